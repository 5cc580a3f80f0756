"""Problems Router - Problem catalogue, daily problem and per-user statistics.

Endpoints:
- GET /problems - Danh sách bài tập (filter/search/sort/pagination, kèm user_stats nếu có token)
- GET /problems/daily - Bài tập của ngày (fallback về ngày gần nhất)
- GET /problems/stats - Thống kê giải bài + streak
- GET /problems/submissions - Lịch sử nộp bài
- GET /problems/by-id/{id}, GET /problems/{slug} - Chi tiết bài tập (chỉ test case mẫu)
- POST /problems - Tạo bài tập mới
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.auth import get_current_user_id, get_user_id_from_authorization_header
from app.db import get_db
from app.settings import PROBLEMS_PAGE_SIZE
from domain.derivations import (
	PROBLEM_SORTS,
	filter_problems,
	get_difficulty_color,
	get_status_color,
	paginate,
	slugify,
	sort_problems,
	total_pages,
	utc_today,
)
from domain.models import DailyProblem, Problem, ProblemSubmission, ProblemTestCase, UserProblemStats
from domain.stats import summarize_problem_stats

router = APIRouter(prefix="/problems", tags=["problems"])

logger = logging.getLogger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")


class TestCaseIn(BaseModel):
	input: str
	expected_output: str
	is_sample: Optional[bool] = None


class ProblemCreateRequest(BaseModel):
	title: str
	description: str
	difficulty: str = "easy"
	category: Optional[str] = None
	tags: List[str] = []
	starter_code: Optional[str] = None
	solution_code: Optional[str] = None
	time_limit_ms: int = 1000
	memory_limit_mb: int = 128
	points: int = 100
	slug: Optional[str] = None
	test_cases: List[TestCaseIn] = []


class PaginatedProblems(BaseModel):
	items: List[Dict[str, Any]]
	total: int
	page: int
	page_size: int
	total_pages: int
	solved_count: int = 0
	total_points: int = 0


def _iso(value) -> Optional[str]:
	return value.isoformat() if value is not None else None


def problem_to_dict(problem: Problem, stats: Optional[UserProblemStats] = None) -> Dict[str, Any]:
	"""Public view of a problem; `solution_code` never leaves the service"""
	return {
		"id": problem.id,
		"title": problem.title,
		"slug": problem.slug,
		"description": problem.description,
		"difficulty": problem.difficulty,
		"difficulty_color": get_difficulty_color(problem.difficulty),
		"category": problem.category,
		"tags": list(problem.tags or []),
		"starter_code": problem.starter_code,
		"time_limit_ms": problem.time_limit_ms,
		"memory_limit_mb": problem.memory_limit_mb,
		"points": problem.points,
		"created_by": problem.created_by,
		"creator": problem.creator.snapshot() if problem.creator else None,
		"created_at": _iso(problem.created_at),
		"user_stats": stats.to_dict() if stats is not None else None,
	}


def _stats_by_problem(db: Session, user_id: Optional[str], problem_ids: List[str]) -> Dict[str, UserProblemStats]:
	if not user_id or not problem_ids:
		return {}
	rows = (
		db.query(UserProblemStats)
		.filter(UserProblemStats.user_id == user_id, UserProblemStats.problem_id.in_(problem_ids))
		.all()
	)
	return {r.problem_id: r for r in rows}


def _problem_detail(db: Session, problem: Problem, user_id: Optional[str]) -> Dict[str, Any]:
	stats = _stats_by_problem(db, user_id, [problem.id]).get(problem.id)
	data = problem_to_dict(problem, stats)
	samples = (
		db.query(ProblemTestCase)
		.filter(ProblemTestCase.problem_id == problem.id, ProblemTestCase.is_sample.is_(True))
		.order_by(ProblemTestCase.order_index.asc())
		.all()
	)
	data["test_cases"] = [
		{"id": tc.id, "input": tc.input, "expected_output": tc.expected_output, "order_index": tc.order_index}
		for tc in samples
	]
	return data


def _unique_slug(db: Session, base: str) -> str:
	slug = base
	suffix = 2
	while db.query(Problem.id).filter(Problem.slug == slug).first() is not None:
		slug = f"{base}-{suffix}"
		suffix += 1
	return slug


def create_problem_rows(db: Session, user_id: str, req: ProblemCreateRequest) -> Problem:
	"""Insert problem + test cases (chưa commit). Hai test case đầu mặc định là mẫu"""
	problem = Problem(
		title=req.title.strip(),
		slug=_unique_slug(db, slugify(req.slug or req.title)),
		description=req.description,
		difficulty=req.difficulty.lower(),
		category=req.category,
		tags=[t.strip() for t in req.tags if t and t.strip()],
		starter_code=req.starter_code,
		solution_code=req.solution_code,
		time_limit_ms=req.time_limit_ms,
		memory_limit_mb=req.memory_limit_mb,
		points=req.points,
		created_by=user_id,
	)
	db.add(problem)
	db.flush()

	for index, tc in enumerate(req.test_cases):
		db.add(ProblemTestCase(
			problem_id=problem.id,
			input=tc.input,
			expected_output=tc.expected_output,
			is_sample=tc.is_sample if tc.is_sample is not None else index < 2,
			order_index=index,
		))
	return problem


@router.get("", response_model=PaginatedProblems)
def list_problems(
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
	category: Optional[str] = None,
	difficulty: Optional[str] = None,
	search: Optional[str] = None,
	sort_by: str = "newest",
	page: int = 1,
	page_size: int = PROBLEMS_PAGE_SIZE,
):
	if sort_by not in PROBLEM_SORTS:
		raise HTTPException(status_code=400, detail=f"sort_by must be one of: {', '.join(PROBLEM_SORTS)}")

	try:
		problems = db.query(Problem).filter(Problem.is_approved.is_(True)).all()
	except Exception as e:
		logger.error(f"Error fetching problems: {e}")
		raise HTTPException(status_code=500, detail="Failed to fetch problems")

	page = max(page, 1)
	page_size = max(page_size, 1)
	rows = sort_problems(filter_problems(problems, category, difficulty, search), sort_by)
	page_rows = paginate(rows, page, page_size)

	# Auth optional: nếu có token thì trả thêm user_stats và tổng kết của user đó.
	user_id = get_user_id_from_authorization_header(authorization)
	stats = _stats_by_problem(db, user_id, [p.id for p in page_rows])

	solved_count = 0
	total_points = 0
	if user_id:
		solved_count, total_points = (
			db.query(func.count(UserProblemStats.id), func.coalesce(func.sum(UserProblemStats.points_earned), 0))
			.filter(UserProblemStats.user_id == user_id, UserProblemStats.solved.is_(True))
			.one()
		)

	return {
		"items": [problem_to_dict(p, stats.get(p.id)) for p in page_rows],
		"total": len(rows),
		"page": page,
		"page_size": page_size,
		"total_pages": total_pages(len(rows), page_size),
		"solved_count": int(solved_count or 0),
		"total_points": int(total_points or 0),
	}


@router.get("/daily")
def get_daily_problem(db: Session = Depends(get_db), authorization: Optional[str] = Header(None)):
	today = utc_today()
	daily = db.query(DailyProblem).filter(DailyProblem.date == today).first()
	if daily is None:
		daily = db.query(DailyProblem).order_by(DailyProblem.date.desc()).first()
	if daily is None or daily.problem is None:
		raise HTTPException(status_code=404, detail="No daily problems available")

	user_id = get_user_id_from_authorization_header(authorization)
	return {
		"date": daily.date.isoformat(),
		"is_today": daily.date == today,
		"problem": _problem_detail(db, daily.problem, user_id),
	}


@router.get("/stats")
def get_problem_stats(
	user_id: Optional[str] = None,
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
):
	target = user_id or get_user_id_from_authorization_header(authorization)
	if not target:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

	solved = (
		db.query(UserProblemStats.points_earned, UserProblemStats.solved_at, Problem.difficulty)
		.join(Problem, Problem.id == UserProblemStats.problem_id)
		.filter(UserProblemStats.user_id == target, UserProblemStats.solved.is_(True))
		.all()
	)
	accepted = (
		db.query(ProblemSubmission.created_at)
		.filter(ProblemSubmission.user_id == target, ProblemSubmission.status == "accepted")
		.all()
	)

	solved_rows = [{"points_earned": points, "difficulty": difficulty} for (points, _, difficulty) in solved]
	# Ngày có hoạt động = ngày có submission accepted hoặc ngày giải lần đầu
	times = [row[0] for row in accepted] + [solved_at for (_, solved_at, _) in solved]

	result = summarize_problem_stats(solved_rows, times, utc_today())
	result["user_id"] = target
	return result


@router.get("/submissions")
def list_submissions(
	problem_id: Optional[str] = None,
	user_id: Optional[str] = None,
	limit: int = 20,
	db: Session = Depends(get_db),
	authorization: Optional[str] = Header(None),
):
	caller = get_user_id_from_authorization_header(authorization)

	q = db.query(ProblemSubmission)
	if problem_id:
		q = q.filter(ProblemSubmission.problem_id == problem_id)
	if user_id:
		q = q.filter(ProblemSubmission.user_id == user_id)

	total = q.count()
	rows = q.order_by(ProblemSubmission.created_at.desc()).limit(max(min(limit, 100), 1)).all()

	items = []
	for s in rows:
		items.append({
			"id": s.id,
			"problem_id": s.problem_id,
			"problem_title": s.problem.title if s.problem else None,
			"challenge_id": s.challenge_id,
			"user": s.user.snapshot() if s.user else None,
			"language": s.language,
			"status": s.status,
			"status_color": get_status_color(s.status),
			"execution_time_ms": s.execution_time_ms,
			"memory_used_mb": s.memory_used_mb,
			"test_cases_passed": s.test_cases_passed,
			"test_cases_total": s.test_cases_total,
			"points_earned": s.points_earned,
			# Code chỉ trả về cho chính chủ
			"code": s.code if caller and caller == s.user_id else None,
			"created_at": _iso(s.created_at),
		})

	return {"items": items, "total": total}


@router.get("/difficulty-color")
def difficulty_color(difficulty: Optional[str] = None):
	return {"difficulty": difficulty, "class_name": get_difficulty_color(difficulty)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_problem(
	req: ProblemCreateRequest,
	db: Session = Depends(get_db),
	user_id: str = Depends(get_current_user_id),
):
	if not req.title.strip() or not req.description.strip():
		raise HTTPException(status_code=400, detail="Title and description are required")
	if req.difficulty.lower() not in DIFFICULTIES:
		raise HTTPException(status_code=400, detail=f"difficulty must be one of: {', '.join(DIFFICULTIES)}")

	try:
		problem = create_problem_rows(db, user_id, req)
		db.commit()
	except Exception as e:
		db.rollback()
		logger.error(f"Error creating problem: {e}")
		raise HTTPException(status_code=500, detail="Failed to create problem")

	db.refresh(problem)
	data = _problem_detail(db, problem, user_id)
	data["test_case_count"] = len(problem.test_cases)
	return data


@router.get("/by-id/{problem_id}")
def get_problem_by_id(problem_id: str, db: Session = Depends(get_db), authorization: Optional[str] = Header(None)):
	problem = db.query(Problem).filter(Problem.id == problem_id).first()
	if not problem:
		raise HTTPException(status_code=404, detail="Problem not found")
	return _problem_detail(db, problem, get_user_id_from_authorization_header(authorization))


@router.get("/{slug}")
def get_problem_by_slug(slug: str, db: Session = Depends(get_db), authorization: Optional[str] = Header(None)):
	problem = db.query(Problem).filter(Problem.slug == slug).first()
	if not problem:
		raise HTTPException(status_code=404, detail="Problem not found")
	return _problem_detail(db, problem, get_user_id_from_authorization_header(authorization))


__all__ = ["router", "problem_to_dict", "create_problem_rows", "ProblemCreateRequest", "TestCaseIn"]
