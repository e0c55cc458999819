"""Backup endpoints - export, validation and restore of the full record store"""

from fastapi import APIRouter, Body, Depends, Query, Request
from sqlalchemy.orm import Session

from gestor_finance.api.dependencies import get_request_id, get_request_notifier, get_store
from gestor_finance.api.errors import mapped_errors, transaction
from gestor_finance.api.v1.schemas import BackupImportSchema, BackupPayload, BackupValidationSchema
from gestor_finance.domain.ports import RecordStore
from gestor_finance.infrastructure.database.session import get_db
from gestor_finance.services.backup import BackupManager
from gestor_finance.services.notifications import DeferredNotifier

router = APIRouter()


def get_backup_manager(
    store: RecordStore = Depends(get_store),
    notifier: DeferredNotifier = Depends(get_request_notifier),
) -> BackupManager:
    return BackupManager(store, notifier)


@router.get("/backup")
def export_backup(request: Request, manager: BackupManager = Depends(get_backup_manager)) -> BackupPayload:
    with mapped_errors(get_request_id(request)):
        return manager.export()


@router.post("/backup/validate", response_model=BackupValidationSchema)
def validate_backup(backup: BackupPayload = Body(...), manager: BackupManager = Depends(get_backup_manager)):
    return BackupValidationSchema.model_validate(manager.validate(backup))


@router.post("/backup/import", response_model=BackupImportSchema)
def import_backup(
    request: Request,
    backup: BackupPayload = Body(...),
    dry_run: bool = Query(False),
    db: Session = Depends(get_db),
    manager: BackupManager = Depends(get_backup_manager),
):
    """
    Replace every stored collection with the backup's.

    A backup with any structural, checksum or reference error is refused as a
    whole and nothing is written.
    """
    with transaction(db, get_request_id(request), manager.notifier):
        result = manager.restore(backup, dry_run=dry_run)
    return BackupImportSchema.model_validate(result)
