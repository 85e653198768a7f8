from fastapi import FastAPI
from lendbook.logging_config import setup_logging
from lendbook.routers.users import router as users_router
from lendbook.routers.accounts import router as accounts_router
from lendbook.routers.transactions import router as transactions_router
from lendbook.routers.loans import router as loans_router
from lendbook.routers.reports import router as reports_router

logger = setup_logging()

app = FastAPI(title="Lendbook API")


app.include_router(users_router)
app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(loans_router)
app.include_router(reports_router)

logger.info("Lendbook API routes registered")


@app.get("/")
def read_root():
    return "Server is running."
