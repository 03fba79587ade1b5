"""Receiver connection API routes."""

from fastapi import APIRouter, HTTPException

from lib.receiver.api.models import DeviceStatusResponse
from lib.receiver.exceptions import TelnetError

router = APIRouter(prefix="/device", tags=["device"])

# Store service instance (set by app)
_service = None


def set_service(service) -> None:
    """Set the receiver service instance.

    Parameters
    ----------
    service
        ReceiverService instance
    """
    global _service
    _service = service


async def _device_status() -> DeviceStatusResponse:
    status = await _service.get_status()
    return DeviceStatusResponse(**status["device"])


@router.get("", response_model=DeviceStatusResponse)
async def get_device_status() -> DeviceStatusResponse:
    """Get receiver connection status.

    Returns
    -------
    DeviceStatusResponse
        Receiver status
    """
    if not _service:
        raise HTTPException(status_code=503, detail="Service not available")

    return await _device_status()


@router.post("/reconnect", response_model=DeviceStatusResponse)
async def reconnect_device() -> DeviceStatusResponse:
    """Drop the current connection and connect again.

    Returns
    -------
    DeviceStatusResponse
        Receiver status after reconnecting
    """
    if not _service:
        raise HTTPException(status_code=503, detail="Service not available")

    try:
        await _service.reconnect()
    except TelnetError as e:
        raise HTTPException(
            status_code=503,
            detail={"error": "connection-error", "message": str(e)},
        ) from e

    return await _device_status()
