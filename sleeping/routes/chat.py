"""
Sleeping Backend: Realtime WebSocket Route
===========================================

What:  WS /ws?userId=<id>&token=<jwt>, the transport for the chat relay.
       An invalid token closes the socket before it is accepted (1008).
How:   Every text frame is a JSON object {"event": ..., "data": ...}; frames
       are decoded here and handed to ChatRelay.dispatch() one at a time.
       The connection is removed from every room when the socket closes.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from sleeping.dependencies import get_chat_relay
from sleeping.exceptions import AuthenticationError
from sleeping.schemas.chat import Envelope
from sleeping.security import decode_access_token
from sleeping.services.chat_relay import EVENT_ERROR, ChatRelay

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime(
    websocket: WebSocket,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    token: Optional[str] = Query(default=None),
    relay: ChatRelay = Depends(get_chat_relay),
) -> None:
    account_id = None
    if token:
        try:
            account_id = decode_access_token(token)
        except AuthenticationError as e:
            logger.info("Rejected realtime connection: %s", e.message)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()
    await relay.connect(websocket, user_id=user_id, account_id=account_id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                envelope = Envelope.model_validate(json.loads(raw))
            except (json.JSONDecodeError, PydanticValidationError):
                await websocket.send_json(
                    {"event": EVENT_ERROR, "data": {"message": 'Frames must be {"event": ..., "data": ...}'}}
                )
                continue
            await relay.dispatch(websocket, envelope.event, envelope.data)
    except WebSocketDisconnect:
        logger.debug("Realtime connection closed (user_id=%s)", user_id)
    finally:
        await relay.disconnect(websocket)
