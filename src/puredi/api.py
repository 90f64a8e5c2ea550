from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from puredi.dispatch import HandlerKind
from puredi.handlers import HelloController
from puredi.integrations.fastapi import controller

router = APIRouter()


@router.get("/hello", response_class=PlainTextResponse)
async def hello(
    hello_controller: Annotated[HelloController, Depends(controller(HandlerKind.HELLO_CONTROLLER))],
) -> str:
    return hello_controller.index()
