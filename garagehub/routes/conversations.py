"""
Owner <-> shop messaging.
New messages are pushed to the conversation room and the other party is notified.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_roles
from ..database import get_db
from ..domain.notifications.service import NotificationService
from ..enums import UserRole
from ..models import Conversation, Message, Shop, User
from ..realtime import conversation_room, hub
from ..schemas import (
    ChatMessageResponse,
    ConversationDetailResponse,
    ConversationResponse,
    MessageCreate,
)
from ..shared.access import is_conversation_participant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["Conversations"])


def _unread_count(conversation: Conversation, user: User) -> int:
    return sum(1 for m in conversation.messages if not m.is_read and m.sender_id != user.id)


def build_conversation_response(conversation: Conversation, user: User) -> ConversationResponse:
    last = conversation.messages[-1] if conversation.messages else None
    return ConversationResponse(
        id=conversation.id,
        user_id=conversation.user_id,
        user_name=conversation.user.name if conversation.user else None,
        shop_id=conversation.shop_id,
        shop_name=conversation.shop.name if conversation.shop else None,
        last_message=ChatMessageResponse.model_validate(last) if last else None,
        unread_count=_unread_count(conversation, user),
        updated_at=conversation.updated_at,
    )


def _get_participant_conversation(db: Session, conversation_id: int, user: User) -> Conversation:
    conversation = db.query(Conversation).filter(Conversation.id == conversation_id).first()
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    if not is_conversation_participant(conversation, user):
        raise HTTPException(status_code=403, detail="Not a participant in this conversation")
    return conversation


@router.get("", response_model=list[ConversationResponse])
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Conversations of the caller, most recently active first"""
    query = db.query(Conversation)
    role = UserRole(current_user.role)
    if role == UserRole.OWNER:
        query = query.filter(Conversation.user_id == current_user.id)
    elif role == UserRole.SHOP:
        shop = current_user.shop
        if not shop:
            return []
        query = query.filter(Conversation.shop_id == shop.id)
    else:
        raise HTTPException(status_code=403, detail="Conversations are only available to owners and shops")

    conversations = query.order_by(Conversation.updated_at.desc(), Conversation.id.desc()).all()
    return [build_conversation_response(c, current_user) for c in conversations]


@router.get("/shop/{shop_id}", response_model=ConversationResponse)
async def get_or_create_shop_conversation(
    shop_id: int,
    current_user: User = Depends(require_roles(UserRole.OWNER)),
    db: Session = Depends(get_db),
):
    """Open the caller's thread with a shop, creating it on first contact"""
    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if not shop:
        raise HTTPException(status_code=404, detail="Shop not found")

    conversation = (
        db.query(Conversation)
        .filter(Conversation.user_id == current_user.id, Conversation.shop_id == shop.id)
        .first()
    )
    if not conversation:
        conversation = Conversation(user_id=current_user.id, shop_id=shop.id)
        db.add(conversation)
        try:
            db.commit()
        except IntegrityError:
            # Created concurrently by another request
            db.rollback()
            conversation = (
                db.query(Conversation)
                .filter(Conversation.user_id == current_user.id, Conversation.shop_id == shop.id)
                .one()
            )
        else:
            db.refresh(conversation)
            logger.info(f"💬 Conversation {conversation.id} opened: user {current_user.id} <-> shop {shop.id}")

    return build_conversation_response(conversation, current_user)


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _get_participant_conversation(db, conversation_id, current_user)
    summary = build_conversation_response(conversation, current_user)
    return ConversationDetailResponse(
        **summary.model_dump(exclude={"last_message"}),
        last_message=summary.last_message,
        messages=[ChatMessageResponse.model_validate(m) for m in conversation.messages],
    )


@router.post("/{conversation_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    conversation_id: int,
    data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    conversation = _get_participant_conversation(db, conversation_id, current_user)

    message = Message(conversation_id=conversation.id, sender_id=current_user.id, text=data.text)
    db.add(message)
    conversation.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(message)

    payload = ChatMessageResponse.model_validate(message)
    hub.publish(conversation_room(conversation.id), "receive_message", payload.model_dump(mode="json"))

    if conversation.user_id == current_user.id:
        recipient_id = conversation.shop.user_id
    else:
        recipient_id = conversation.user_id
    NotificationService(db).new_message(recipient_id, current_user.name, conversation.id)

    return payload


@router.put("/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Mark the other party's messages as read"""
    conversation = _get_participant_conversation(db, conversation_id, current_user)

    updated = (
        db.query(Message)
        .filter(
            Message.conversation_id == conversation.id,
            Message.sender_id != current_user.id,
            Message.is_read.is_(False),
        )
        .update({"is_read": True}, synchronize_session=False)
    )
    db.commit()
    return {"success": True, "updated": updated}
