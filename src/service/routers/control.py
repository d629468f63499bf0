from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_shutdown_sender
from ..shutdown import ShutdownSender


router = APIRouter(
    tags=["control"],
)


# No access control: anyone who can reach the service can stop it.
@router.post("/stop", status_code=status.HTTP_204_NO_CONTENT)
async def stop(stopper: Annotated[ShutdownSender, Depends(get_shutdown_sender)]) -> Response:
    """Ask the server to drain and exit. Returns before shutdown starts."""
    stopper.send()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
