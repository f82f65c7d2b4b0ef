"""
Income and expense routes. Both kinds share the same handlers; build_router
binds them to one LedgerKind and its request model.
"""
from typing import List, Type

from fastapi import APIRouter, Depends, Response

from app.core.deps import get_current_user, ledger_service
from app.models.common import CamelModel
from app.models.ledger import ExpenseCreate, IncomeCreate, LedgerEntryPublic, LedgerKind
from app.models.user import UserInDB
from app.services.ledger import LedgerService
from app.utils.spreadsheet import XLSX_MEDIA_TYPE, attachment_filename

CREATE_MODELS = {
    LedgerKind.INCOME: IncomeCreate,
    LedgerKind.EXPENSE: ExpenseCreate,
}


def build_router(kind: LedgerKind) -> APIRouter:
    router = APIRouter()
    create_model: Type[CamelModel] = CREATE_MODELS[kind]
    get_service = ledger_service(kind)

    @router.get("", response_model=List[LedgerEntryPublic], response_model_exclude_none=True)
    def list_entries(
        user: UserInDB = Depends(get_current_user),
        service: LedgerService = Depends(get_service),
    ):
        return [LedgerEntryPublic.from_db(entry) for entry in service.list(user.user_id)]

    @router.post("/add", response_model=LedgerEntryPublic, response_model_exclude_none=True)
    def add_entry(
        body: create_model,
        user: UserInDB = Depends(get_current_user),
        service: LedgerService = Depends(get_service),
    ):
        entry = service.add(
            user.user_id,
            label=getattr(body, kind.label_field),
            amount=body.amount,
            date=body.date,
            icon=body.icon,
        )
        return LedgerEntryPublic.from_db(entry)

    @router.get("/download")
    def download_entries(
        user: UserInDB = Depends(get_current_user),
        service: LedgerService = Depends(get_service),
    ):
        return Response(
            content=service.export_workbook(user.user_id),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f"attachment; filename={attachment_filename(kind)}"},
        )

    @router.delete("/{entry_id}")
    def delete_entry(
        entry_id: str,
        user: UserInDB = Depends(get_current_user),
        service: LedgerService = Depends(get_service),
    ):
        deleted = service.delete(user.user_id, entry_id)
        return {
            "message": f"{kind.display_name} Deleted Successfully",
            f"deleted{kind.display_name}": LedgerEntryPublic.from_db(deleted).model_dump(
                by_alias=True, exclude_none=True
            ),
        }

    return router
