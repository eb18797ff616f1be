"""
Chatbot router - /api/chatbot/*
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from rest_api.models import User
from rest_api.services.chatbot import (
    ChatbotService,
    ConversationHistoryStore,
    GeminiClient,
    get_assistant_client,
    get_history_store,
)
from shared.infrastructure.db import get_db
from shared.security.auth import current_user
from shared.utils.schemas import ChatbotMessageRequest, ChatbotResponse, SuccessResponse

router = APIRouter(prefix="/api/chatbot", tags=["chatbot"])


def get_chatbot_service(
    db: Session = Depends(get_db),
    history: ConversationHistoryStore = Depends(get_history_store),
    client: GeminiClient = Depends(get_assistant_client),
) -> ChatbotService:
    return ChatbotService(db, history, client)


@router.post("/message", response_model=ChatbotResponse)
async def send_message(
    body: ChatbotMessageRequest,
    user: User = Depends(current_user),
    service: ChatbotService = Depends(get_chatbot_service),
) -> ChatbotResponse:
    """
    Answer with the AI assistant when configured, else with a rule-based
    reply. `source` tells the client which one answered.
    """
    reply = await service.reply(user.id, body.message)
    return ChatbotResponse(response=reply.response, source=reply.source)


@router.delete("/history", response_model=SuccessResponse)
def clear_history(
    user: User = Depends(current_user),
    service: ChatbotService = Depends(get_chatbot_service),
) -> SuccessResponse:
    service.clear_history(user.id)
    return SuccessResponse(message="Conversation cleared")
