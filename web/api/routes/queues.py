"""
FastAPI routes for message queues.
"""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import PlainTextResponse

from docstore import Repository

from ..dependencies import read_text_body, verify_credentials
from ...core.repository import get_repository


router = APIRouter(
    prefix="/queues",
    tags=["queues"],
    dependencies=[Depends(verify_credentials)]
)


@router.post("/{queue}", status_code=status.HTTP_201_CREATED)
async def enqueue_message(
    queue: str,
    message: str = Depends(read_text_body),
    repository: Repository = Depends(get_repository)
):
    """Add a message to a queue."""
    await repository.enqueue_message(queue, message)
    return Response(status_code=status.HTTP_201_CREATED)


@router.delete("/{queue}")
async def dequeue_message(queue: str, repository: Repository = Depends(get_repository)):
    """
    Remove an arbitrary message from a queue.

    **Returns:**
    - 200 with the message as the body
    - 204 if the queue is empty
    """
    message = await repository.dequeue_message(queue)
    if message is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return PlainTextResponse(message)
