from fastapi import HTTPException, Request

from ..core.control import SessionController


def controller_from_state(state) -> SessionController:
    """Return the running controller or raise 503"""
    if not getattr(state, "startup_complete", False):
        raise HTTPException(
            status_code=503,
            detail="System is still starting up. Please try again in a moment.",
        )
    if getattr(state, "controller", None) is None:
        raise HTTPException(
            status_code=503,
            detail="Session controller not initialized or has failed",
        )
    return state.controller


def get_controller(request: Request) -> SessionController:
    """Dependency injection for the session controller"""
    return controller_from_state(request.app.state)
