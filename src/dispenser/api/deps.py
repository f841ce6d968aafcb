"""FastAPI dependencies."""

from fastapi import HTTPException, Request

from dispenser.services.dispenser import TokenDispenser


def get_dispenser(request: Request) -> TokenDispenser:
    """Return the service object created in the app lifespan."""
    dispenser = getattr(request.app.state, "dispenser", None)
    if dispenser is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return dispenser
