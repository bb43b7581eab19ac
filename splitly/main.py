from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import get_settings
from .database import init_db
from .errors import LedgerError
from .logs import configure_logging, get_logger
from .routers import groups, rates, expenses, balances, settlements

settings = get_settings()
configure_logging(settings)
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    log.info("startup", database=settings.database_url)
    yield


app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


app.include_router(groups.router, prefix="/groups", tags=["groups"])
app.include_router(rates.router, prefix="/rates", tags=["rates"])
app.include_router(expenses.router, prefix="/groups/{group_id}/expenses", tags=["expenses"])
app.include_router(balances.router, prefix="/groups/{group_id}/balances", tags=["balances"])
app.include_router(settlements.router, prefix="/groups/{group_id}/settlements", tags=["settlements"])


@app.get("/")
def health():
    return {"status": "ok"}
