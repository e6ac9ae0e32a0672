# backend/routes/bom.py
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services import bom_service
from schemas.bom import BomComponentOut, BomComponentCreate, BomComponentUpdate, BomResponse
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/bom", tags=["BOM"])


# BOM grouped by variant: {"SA_CA": [{seq, componentCode, componentName, quantity}, ...]}
@router.get("", response_model=Dict[str, List[BomComponentOut]])
def list_bom(
    variant: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return bom_service.list_bom(db, variant)


@router.post("", response_model=BomResponse)
def add_component(
    payload: BomComponentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    components = bom_service.add_component(
        db, payload.variant, payload.component_code, payload.component_name, payload.quantity
    )
    write_log(db, user_id=current_user.id, action="BOM_ADD", resource="bom", ip=client_ip(request),
              meta={"variant": payload.variant, "component": payload.component_code})
    return {"success": True, "bom": components}


@router.put("/{variant}/component/{component_code}", response_model=BomResponse)
def update_component(
    variant: str,
    component_code: str,
    payload: BomComponentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    components = bom_service.update_component(
        db, variant, component_code, payload.component_name, payload.quantity
    )
    write_log(db, user_id=current_user.id, action="BOM_UPDATE", resource="bom", ip=client_ip(request),
              meta={"variant": variant, "component": component_code})
    return {"success": True, "bom": components}


@router.delete("/{variant}/component/{component_code}", response_model=BomResponse)
def delete_component(
    variant: str,
    component_code: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    components = bom_service.delete_component(db, variant, component_code)
    write_log(db, user_id=current_user.id, action="BOM_DELETE", resource="bom", ip=client_ip(request),
              meta={"variant": variant, "component": component_code})
    return {"success": True, "bom": components}
