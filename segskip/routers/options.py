from typing import Any

from fastapi import APIRouter, Body, Header, HTTPException

from segskip.models.schemas import ErrorResponse, SkipOptions
from segskip.routers.segments import verify_api_key
from segskip.services.options import OptionsStore

router = APIRouter(prefix="/options", tags=["options"])

options = OptionsStore()


@router.get("", response_model=SkipOptions)
async def get_options(x_api_key: str = Header(...)):
    verify_api_key(x_api_key)
    return options.options


@router.put("", response_model=SkipOptions)
async def update_options(
    values: dict[str, Any] = Body(...),
    x_api_key: str = Header(...),
):
    """Change some options; the rest keep their current values."""
    verify_api_key(x_api_key)

    try:
        return options.update(values)
    except KeyError as e:
        raise HTTPException(
            status_code=422,
            detail=ErrorResponse(error=f"Unknown option: {e.args[0]}", code="UNKNOWN_OPTION").model_dump(),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=422,
            detail=ErrorResponse(error=str(e), code="INVALID_OPTION").model_dump(),
        )
