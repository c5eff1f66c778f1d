from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from .. import database
from ..payroll.deductions import PayrollConfig, load_payroll_config, save_payroll_config
from ..registry import ComponentConfig, ComponentRegistry
from ..schemas import ComponentUpdate
from ..store import DocumentStore

router = APIRouter()


def get_registry(request: Request) -> ComponentRegistry:
    return request.app.state.registry


@router.get("/components", response_model=dict[str, ComponentConfig])
def list_components(registry: ComponentRegistry = Depends(get_registry)):
    return registry.configs()


@router.post("/components/reset", response_model=dict[str, ComponentConfig])
def reset_components(registry: ComponentRegistry = Depends(get_registry)):
    registry.reset_to_registry()
    return registry.configs()


@router.post("/components/{component_id}", response_model=ComponentConfig)
def update_component(
    component_id: str,
    data: ComponentUpdate,
    registry: ComponentRegistry = Depends(get_registry),
):
    try:
        return registry.update_config(component_id, data.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/payroll", response_model=PayrollConfig)
def get_payroll_config(db: Session = Depends(database.get_db)):
    return load_payroll_config(DocumentStore(db))


@router.post("/payroll", response_model=PayrollConfig)
def update_payroll_config(data: PayrollConfig, db: Session = Depends(database.get_db)):
    return save_payroll_config(DocumentStore(db), data)
