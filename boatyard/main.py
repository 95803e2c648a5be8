from contextlib import asynccontextmanager
import logging
import re
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exception_handlers import RequestValidationError
from boatyard.config import config
from boatyard.database import init_db
from boatyard.placement.errors import (
    PlacementError,
    SlotOccupied,
    InvalidSlot,
    LocationNotFound,
    LocationNameTaken,
    AssetNotFound,
    AssetAlreadyAssigned,
    NoVacantSlot,
    TransitionInFlight,
    PersistenceFailed,
)
from boatyard.routers import sites, locations, boats, placements, movements

logger = logging.getLogger(__name__)

PLACEMENT_ERROR_STATUS = {
    LocationNotFound: status.HTTP_404_NOT_FOUND,
    AssetNotFound: status.HTTP_404_NOT_FOUND,
    SlotOccupied: status.HTTP_409_CONFLICT,
    AssetAlreadyAssigned: status.HTTP_409_CONFLICT,
    NoVacantSlot: status.HTTP_409_CONFLICT,
    TransitionInFlight: status.HTTP_409_CONFLICT,
    InvalidSlot: status.HTTP_400_BAD_REQUEST,
    LocationNameTaken: status.HTTP_400_BAD_REQUEST,
    PersistenceFailed: status.HTTP_503_SERVICE_UNAVAILABLE,
}

@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.AUTO_CREATE_TABLES:
        init_db()
    yield

# Create FastAPI app
app = FastAPI(
    title="Boatyard Placement API",
    description="Location topology and slot assignment for a marina",
    version="1.0.0",
    lifespan=lifespan
)

# Global handler for Pydantic validation errors Formatting
@app.exception_handler(RequestValidationError)
async def fastapi_validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = err["loc"]
        # Remove "body" prefix if present
        if loc and loc[0] == "body":
            loc = loc[1:]
        field_name = ".".join(str(l) for l in loc)
        msg = err["msg"]
        # Remove common error prefixes using regex
        msg = re.sub(r"^(value is not a valid|Value error,|Value error|type error,|type error|none is not an allowed value|none is not allowed|not a valid)[:\s]*", "", msg, flags=re.IGNORECASE)
        if ':' in msg:
            msg = msg.split(':', 1)[1].strip()
        if msg.strip().lower() == "input should be a valid string":
            last_field = field_name.split('.')[-1] if field_name else "Field"
            msg = f"{last_field.capitalize()} cannot be empty"
        msg = msg.strip().rstrip('.')
        errors.append({
            "field": field_name,
            "message": msg
        })
    return JSONResponse(
        status_code=422,
        content={"detail": errors}
    )

# Placement failures keep the same {"detail": [{"field", "message"}]} shape as HTTPException
@app.exception_handler(PlacementError)
async def placement_exception_handler(request: Request, exc: PlacementError):
    status_code = PLACEMENT_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.info(f"{request.method} {request.url.path} rejected ({status_code}): {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": [exc.to_detail()]}
    )

@app.get("/")
def read_root():
    return {
        "message": "Boatyard Placement API",
        "status": "running",
        "version": "1.0.0"
    }

app.include_router(sites.router)
app.include_router(locations.router)
app.include_router(boats.router)
app.include_router(placements.router)
app.include_router(movements.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
