"""Problem bulk import (Excel) endpoints.

- GET /problems/imports/template - Tải file mẫu .xlsx
- POST /problems/imports/excel - Upload file, tạo bài tập + test case
- GET /problems/imports - Lịch sử import của user
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy.orm import Session

from app.auth import get_current_user_id
from app.db import get_db
from app.settings import UPLOAD_MAX_MB
from domain.models import ProblemImport
from infra.utils.spreadsheet import XLSX_MEDIA_TYPE, SpreadsheetError, generate_excel_template, parse_excel_file
from .problems import ProblemCreateRequest, TestCaseIn, create_problem_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/problems/imports", tags=["problem-imports"])

TEMPLATE_FILENAME = "problem_import_template.xlsx"


def _enforce_upload_limit(file_bytes_len: int) -> None:
	"""Giới hạn dung lượng upload (file được đọc toàn bộ vào RAM)."""
	max_bytes = int(UPLOAD_MAX_MB) * 1024 * 1024
	if file_bytes_len > max_bytes:
		raise HTTPException(
			status_code=413,
			detail=f"File too large. Max allowed: {UPLOAD_MAX_MB}MB",
		)


def import_to_dict(row: ProblemImport) -> dict:
	return {
		"id": row.id,
		"file_name": row.file_name,
		"file_size": row.file_size,
		"status": row.status,
		"problems_count": row.problems_count,
		"error_message": row.error_message,
		"created_at": row.created_at.isoformat() if row.created_at else None,
		"updated_at": row.updated_at.isoformat() if row.updated_at else None,
	}


@router.get("/template")
def download_template():
	return Response(
		content=generate_excel_template(),
		media_type=XLSX_MEDIA_TYPE,
		headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
	)


def _mark_failed(db: Session, record: ProblemImport, message: str) -> None:
	db.rollback()
	record.status = "failed"
	record.error_message = message
	record.updated_at = datetime.now(timezone.utc)
	db.commit()


def _insert_templates(db: Session, user_id: str, record: ProblemImport, templates) -> tuple:
	"""Mỗi bài một transaction; bài lỗi được ghi vào errors, không chặn các bài khác"""
	created = 0
	errors = []
	for template in templates:
		req = ProblemCreateRequest(
			title=template.title,
			description=template.description,
			difficulty=template.difficulty,
			category=template.category,
			tags=template.tags,
			starter_code=template.starter_code,
			solution_code=template.solution_code,
			time_limit_ms=template.time_limit_ms,
			memory_limit_mb=template.memory_limit_mb,
			points=template.points,
			test_cases=[
				TestCaseIn(input=tc.input, expected_output=tc.expected_output, is_sample=tc.is_sample)
				for tc in template.test_cases
			],
		)
		try:
			create_problem_rows(db, user_id, req)
			db.commit()
			created += 1
		except Exception as e:
			db.rollback()
			logger.error(f"Import {record.id}: failed to insert '{template.title}': {e}")
			errors.append(f"{template.title}: {e}")
	return created, errors


@router.post("/excel")
def import_excel(
	file: UploadFile = File(...),
	db: Session = Depends(get_db),
	user_id: str = Depends(get_current_user_id),
):
	filename = file.filename or "upload.xlsx"
	if not filename.lower().endswith((".xlsx", ".xls")):
		raise HTTPException(status_code=400, detail="Please upload an Excel file (.xlsx or .xls)")

	try:
		contents = file.file.read()
	finally:
		file.file.close()
	_enforce_upload_limit(len(contents))

	record = ProblemImport(user_id=user_id, file_name=filename, file_size=len(contents), status="processing")
	db.add(record)
	db.commit()
	db.refresh(record)

	# Bản ghi import không bao giờ được kẹt ở trạng thái processing
	try:
		templates = parse_excel_file(contents)
		created, errors = _insert_templates(db, user_id, record, templates)
	except SpreadsheetError as e:
		logger.warning(f"Import {record.id} failed: {e}")
		_mark_failed(db, record, str(e))
		raise HTTPException(status_code=400, detail=str(e))
	except Exception as e:
		logger.error(f"Import {record.id} crashed: {e}")
		_mark_failed(db, record, f"Import failed: {e}")
		raise HTTPException(status_code=500, detail="Failed to import problems")

	record.status = "completed"
	record.problems_count = created
	record.error_message = "; ".join(errors) if errors else None
	record.updated_at = datetime.now(timezone.utc)
	db.commit()
	db.refresh(record)

	logger.info(f"Import {record.id}: {created}/{len(templates)} problems created")
	return {"success": True, "imported_count": created, "errors": errors, "import": import_to_dict(record)}


@router.get("")
def list_imports(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
	rows = (
		db.query(ProblemImport)
		.filter(ProblemImport.user_id == user_id)
		.order_by(ProblemImport.created_at.desc())
		.all()
	)
	return {"items": [import_to_dict(r) for r in rows]}


__all__ = ["router"]
