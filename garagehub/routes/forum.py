import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from ..auth import get_current_user, get_optional_user
from ..database import get_db
from ..models import Shop, User
from ..models_forum import ForumComment, ForumPost, PostLike
from ..schemas import ForumCommentCreate, ForumCommentResponse, ForumPostCreate, ForumPostResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forum", tags=["Forum"])


def build_comment_response(comment: ForumComment) -> ForumCommentResponse:
    return ForumCommentResponse(
        id=comment.id,
        author=comment.author.name if comment.author else "Unknown",
        role=comment.author.role if comment.author else "",
        content=comment.content,
        shop_id=comment.shop_id,
        created_at=comment.created_at,
    )


def build_post_response(post: ForumPost, liked_ids: set[int]) -> ForumPostResponse:
    return ForumPostResponse(
        id=post.id,
        author=post.author.name if post.author else "Unknown",
        author_role=post.author.role if post.author else "",
        title=post.title,
        content=post.content,
        tags=post.tags or [],
        like_count=post.like_count,
        comment_count=post.comment_count,
        view_count=post.view_count,
        liked_by_me=post.id in liked_ids,
        comments=[build_comment_response(c) for c in post.comments],
        created_at=post.created_at,
    )


def liked_post_ids(db: Session, user: Optional[User]) -> set[int]:
    if not user:
        return set()
    return {row.post_id for row in db.query(PostLike.post_id).filter(PostLike.user_id == user.id).all()}


def get_post_or_404(db: Session, post_id: int) -> ForumPost:
    post = db.query(ForumPost).filter(ForumPost.id == post_id).first()
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.get("", response_model=list[ForumPostResponse])
async def get_posts(
    tag: Optional[str] = None,
    limit: int = Query(50, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """Newest posts first, with their comments"""
    posts = (
        db.query(ForumPost)
        .options(
            joinedload(ForumPost.author),
            selectinload(ForumPost.comments).joinedload(ForumComment.author),
        )
        .order_by(ForumPost.created_at.desc(), ForumPost.id.desc())
        .all()
    )
    if tag:
        tag = tag.strip().lower()
        posts = [p for p in posts if tag in (p.tags or [])]

    liked = liked_post_ids(db, current_user)
    return [build_post_response(p, liked) for p in posts[:limit]]


@router.get("/{post_id}", response_model=ForumPostResponse)
async def get_post(
    post_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    post = get_post_or_404(db, post_id)
    post.view_count = (post.view_count or 0) + 1
    db.commit()
    db.refresh(post)
    return build_post_response(post, liked_post_ids(db, current_user))


@router.post("", response_model=ForumPostResponse, status_code=201)
async def create_post(
    data: ForumPostCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = ForumPost(user_id=current_user.id, title=data.title, content=data.content, tags=data.tags)
    db.add(post)
    db.commit()
    db.refresh(post)

    logger.info(f"📝 Forum post {post.id} created by user {current_user.id}")
    return build_post_response(post, set())


@router.post("/{post_id}/like")
async def toggle_like(
    post_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Like the post, or take the like back when it is already there"""
    post = get_post_or_404(db, post_id)
    existing = (
        db.query(PostLike).filter(PostLike.post_id == post.id, PostLike.user_id == current_user.id).first()
    )

    if existing:
        db.delete(existing)
        post.like_count = max((post.like_count or 0) - 1, 0)
        liked = False
    else:
        db.add(PostLike(post_id=post.id, user_id=current_user.id))
        post.like_count = (post.like_count or 0) + 1
        liked = True

    try:
        db.commit()
    except IntegrityError:
        # A concurrent request already recorded this like
        db.rollback()
        post = get_post_or_404(db, post_id)
        liked = True

    return {"liked": liked, "like_count": post.like_count}


@router.post("/{post_id}/comments", response_model=ForumCommentResponse, status_code=201)
async def add_comment(
    post_id: int,
    data: ForumCommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    post = get_post_or_404(db, post_id)
    shop = db.query(Shop).filter(Shop.user_id == current_user.id).first()

    comment = ForumComment(
        post_id=post.id,
        user_id=current_user.id,
        shop_id=shop.id if shop else None,
        content=data.content,
    )
    db.add(comment)
    post.comment_count = (post.comment_count or 0) + 1
    db.commit()
    db.refresh(comment)

    logger.info(f"💬 Comment {comment.id} on forum post {post.id} by user {current_user.id}")
    return build_comment_response(comment)
