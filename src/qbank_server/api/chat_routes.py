"""
Chat Routes

Study-assistant chat used by the question pages. Messages are forwarded to
the configured chat-completions model; if it fails the fallback model is
tried once before the request is answered with 502.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from .dependencies import get_llm_client
from .models import ChatRequest, ChatResponse
from ..llm.client import LLMClient, LLMError

router = APIRouter(prefix="/chat", tags=["chat"])

CHAT_FAILURE_DETAIL = "Failed to get a response from the language model. Please try again later."


@router.post(
    "",
    response_model=ChatResponse,
    summary="Ask the study assistant",
)
async def chat(
    req: ChatRequest,
    llm: Annotated[LLMClient, Depends(get_llm_client)],
) -> ChatResponse:
    messages = [{"role": m.role, "content": m.content} for m in req.messages]

    try:
        text = await llm.complete(messages)
    except LLMError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=CHAT_FAILURE_DETAIL,
        ) from exc

    return ChatResponse(response=text)
