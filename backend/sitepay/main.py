from fastapi import FastAPI
from sitepay.routers import imports, payroll, records, settings, sites
from sitepay.config import Config
from sitepay.database import SessionLocal, engine
from sitepay.registry import ComponentRegistry
from sitepay import models
import logging

# Ensure application logs show informative messages
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(levelname)s:%(name)s:%(message)s"
)

models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="sitepay API")
app.state.registry = ComponentRegistry(SessionLocal)

app.include_router(payroll.router, prefix="/api/payroll", tags=["payroll"])
app.include_router(sites.router, prefix="/api/sites", tags=["sites"])
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(imports.router, prefix="/api/import", tags=["import"])
# generic collection routes last, they match any /api/{collection}
app.include_router(records.router, prefix="/api", tags=["records"])

@app.get("/")
def read_root():
    return {"message": "sitepay API"}
