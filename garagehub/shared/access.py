"""Participant checks shared by HTTP routes and the socket endpoint"""

from ..models import Conversation, User


def is_conversation_participant(conversation: Conversation, user: User) -> bool:
    """The owner side or the shop's user may read and write a conversation"""
    if conversation.user_id == user.id:
        return True
    return conversation.shop is not None and conversation.shop.user_id == user.id
