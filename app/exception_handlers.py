"""Map costing errors to JSON responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.services.errors import (
    CostingError,
    CyclicRecipeError,
    InvalidRecipeYield,
    MissingReferenceError,
    UnitKindMismatch,
)

logger = logging.getLogger(__name__)


def missing_reference_handler(request: Request, exc: MissingReferenceError):
    """Unknown unit, item, recipe or menu item (404)."""
    return JSONResponse(
        status_code=404,
        content={
            "detail": str(exc),
            "error": "missing_reference",
            "entity": exc.entity,
            "entity_id": str(exc.entity_id),
        },
    )


def cyclic_recipe_handler(request: Request, exc: CyclicRecipeError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "error": "cyclic_recipe",
            "path": [str(p) for p in [*exc.path, exc.recipe_id]],
        },
    )


def unit_kind_mismatch_handler(request: Request, exc: UnitKindMismatch):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "error": "unit_kind_mismatch",
            "from_unit": exc.from_unit,
            "to_unit": exc.to_unit,
        },
    )


def invalid_yield_handler(request: Request, exc: InvalidRecipeYield):
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "error": "invalid_recipe_yield",
            "recipe_id": str(exc.recipe_id),
        },
    )


def costing_error_handler(request: Request, exc: CostingError):
    logger.warning(f"Costing error on {request.url.path}: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc), "error": "costing_error"})


def setup_exception_handlers(app: FastAPI) -> FastAPI:
    """Register costing error handlers on the application."""
    app.add_exception_handler(MissingReferenceError, missing_reference_handler)
    app.add_exception_handler(CyclicRecipeError, cyclic_recipe_handler)
    app.add_exception_handler(UnitKindMismatch, unit_kind_mismatch_handler)
    app.add_exception_handler(InvalidRecipeYield, invalid_yield_handler)
    app.add_exception_handler(CostingError, costing_error_handler)
    return app
