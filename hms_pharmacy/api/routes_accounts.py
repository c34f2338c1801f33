from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from hms_pharmacy.api.deps import get_db, get_identity_provider
from hms_pharmacy.api.exception_handlers import error_response
from hms_pharmacy.schemas.accounts import AccountCreate, AccountCreatedOut
from hms_pharmacy.services.account_provisioning import create_user_account

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post("", response_model=AccountCreatedOut)
def create_account(
    payload: AccountCreate,
    request: Request,
    db: Session = Depends(get_db),
    identity=Depends(get_identity_provider),
):
    """Login account for an existing staff / doctor / patient record."""
    try:
        created = create_user_account(
            db,
            identity,
            payload.entity_type,
            payload.entity_id,
            payload.email,
            payload.name,
            payload.role,
            payload.password,
        )
    except Exception as e:
        return error_response(db, request, e, function="create_account",
                              payload=payload.model_dump(exclude={"password"}))
    return AccountCreatedOut(email=created.email, password=created.password, user_id=created.user_id)
