"""Quote repository - Database operations for quote requests and quotes"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload, selectinload

from ...enums import QuoteRequestStatus, QuoteStatus
from ...models_quote import Quote, QuoteLineItem, QuoteRequest


class QuoteRepository:
    """Repository for quote database operations"""

    @staticmethod
    def create_request(db: Session, **data) -> QuoteRequest:
        request = QuoteRequest(**data)
        db.add(request)
        db.commit()
        db.refresh(request)
        return request

    @staticmethod
    def get_request(db: Session, request_id: int) -> Optional[QuoteRequest]:
        return db.query(QuoteRequest).filter(QuoteRequest.id == request_id).first()

    @staticmethod
    def get_requests_for_user(db: Session, user_id: int) -> list[QuoteRequest]:
        return (
            db.query(QuoteRequest)
            .options(selectinload(QuoteRequest.quotes).selectinload(Quote.line_items))
            .filter(QuoteRequest.user_id == user_id)
            .order_by(QuoteRequest.id.desc())
            .all()
        )

    @staticmethod
    def get_open_requests_not_quoted_by(db: Session, shop_id: int) -> list[QuoteRequest]:
        """OPEN requests, newest first, that shop_id has not answered yet"""
        already_quoted = select(Quote.quote_request_id).where(Quote.shop_id == shop_id)
        return (
            db.query(QuoteRequest)
            .options(joinedload(QuoteRequest.user), joinedload(QuoteRequest.vehicle))
            .filter(
                QuoteRequest.status == QuoteRequestStatus.OPEN.value,
                QuoteRequest.id.notin_(already_quoted),
            )
            .order_by(QuoteRequest.id.desc())
            .all()
        )

    @staticmethod
    def shop_has_quoted(db: Session, request_id: int, shop_id: int) -> bool:
        return (
            db.query(Quote.id)
            .filter(Quote.quote_request_id == request_id, Quote.shop_id == shop_id)
            .first()
            is not None
        )

    @staticmethod
    def create_quote(db: Session, line_items: list[dict], **data) -> Quote:
        quote = Quote(**data)
        quote.line_items = [QuoteLineItem(**item) for item in line_items]
        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    @staticmethod
    def get_quote(db: Session, quote_id: int) -> Optional[Quote]:
        return (
            db.query(Quote)
            .options(selectinload(Quote.line_items), joinedload(Quote.shop))
            .filter(Quote.id == quote_id)
            .first()
        )

    @staticmethod
    def reject_other_quotes(db: Session, request_id: int, keep_quote_id: int) -> int:
        """Reject every still-open competitor of keep_quote_id. Does not commit."""
        return (
            db.query(Quote)
            .filter(
                Quote.quote_request_id == request_id,
                Quote.id != keep_quote_id,
                Quote.status == QuoteStatus.QUOTED.value,
            )
            .update({"status": QuoteStatus.REJECTED.value}, synchronize_session=False)
        )
