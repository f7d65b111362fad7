"""Form builder and submission review endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_admin, require_csrf_header, require_staff
from app.db.enums import SubmissionStatus
from app.db.models import Form
from app.schemas.forms import (
    FormCreate,
    FormRead,
    FormSummary,
    FormUpdate,
    SubmissionBulkDelete,
    SubmissionListResponse,
    SubmissionRead,
    SubmissionStatusUpdate,
)
from app.services import form_service, form_submission_service

router = APIRouter(prefix="/admin", tags=["forms"])


def _form_read(form: Form) -> FormRead:
    return FormRead(
        id=form.id,
        name=form.name,
        slug=form.slug,
        description=form.description,
        fields=form_service.parse_fields(form),
        settings=form_service.parse_settings(form),
        is_active=form.is_active,
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


def _get_form_or_404(db: Session, form_id: UUID) -> Form:
    form = form_service.get_form(db, form_id)
    if form is None:
        raise HTTPException(status_code=404, detail="Form not found")
    return form


# =============================================================================
# Forms (admin)
# =============================================================================

@router.get("/forms", response_model=list[FormSummary], dependencies=[Depends(require_admin)])
def list_forms(db: Session = Depends(get_db)):
    return form_service.list_forms(db)


@router.post(
    "/forms",
    response_model=FormRead,
    status_code=201,
    dependencies=[Depends(require_admin), Depends(require_csrf_header)],
)
def create_form(body: FormCreate, db: Session = Depends(get_db)):
    try:
        form = form_service.create_form(db, body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _form_read(form)


@router.get("/forms/{form_id}", response_model=FormRead, dependencies=[Depends(require_admin)])
def get_form(form_id: UUID, db: Session = Depends(get_db)):
    return _form_read(_get_form_or_404(db, form_id))


@router.patch(
    "/forms/{form_id}",
    response_model=FormRead,
    dependencies=[Depends(require_admin), Depends(require_csrf_header)],
)
def update_form(form_id: UUID, body: FormUpdate, db: Session = Depends(get_db)):
    form = _get_form_or_404(db, form_id)
    try:
        form = form_service.update_form(db, form, body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _form_read(form)


@router.delete(
    "/forms/{form_id}",
    status_code=204,
    dependencies=[Depends(require_admin), Depends(require_csrf_header)],
)
def delete_form(form_id: UUID, db: Session = Depends(get_db)):
    form_service.delete_form(db, _get_form_or_404(db, form_id))
    return Response(status_code=204)


# =============================================================================
# Submissions (staff)
# =============================================================================

@router.get(
    "/forms/{form_id}/submissions",
    response_model=SubmissionListResponse,
    dependencies=[Depends(require_staff)],
)
def list_submissions(
    form_id: UUID,
    status: SubmissionStatus | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
):
    _get_form_or_404(db, form_id)
    items, total = form_submission_service.list_submissions(
        db, form_id, status=status, page=page, per_page=per_page
    )
    return SubmissionListResponse(
        items=[SubmissionRead.model_validate(s) for s in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/submissions/{submission_id}",
    response_model=SubmissionRead,
    dependencies=[Depends(require_staff)],
)
def get_submission(submission_id: UUID, db: Session = Depends(get_db)):
    """Opening a NEW submission marks it READ."""
    submission = form_submission_service.get_submission(db, submission_id)
    if submission is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    return submission


@router.patch(
    "/submissions/status",
    dependencies=[Depends(require_staff), Depends(require_csrf_header)],
)
def update_submission_status(body: SubmissionStatusUpdate, db: Session = Depends(get_db)):
    updated = form_submission_service.update_submission_status(db, body.ids, body.status)
    return {"updated": updated}


@router.post(
    "/submissions/delete",
    dependencies=[Depends(require_staff), Depends(require_csrf_header)],
)
def delete_submissions(body: SubmissionBulkDelete, db: Session = Depends(get_db)):
    deleted = form_submission_service.delete_submissions(db, body.ids)
    return {"deleted": deleted}
