"""Third-party competitive programming widgets (LeetCode, GeeksforGeeks, CodeChef)."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from infra.clients import CodeChefClient, GfgClient, IntegrationError, LeetCodeClient
from infra.clients.leetcode import format_leetcode_timestamp, get_language_color, get_leetcode_status_color

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


def get_leetcode_client() -> LeetCodeClient:
	return LeetCodeClient()


def get_gfg_client() -> GfgClient:
	return GfgClient()


def get_codechef_client() -> CodeChefClient:
	return CodeChefClient()


def _upstream_error(e: IntegrationError) -> HTTPException:
	return HTTPException(status_code=502, detail=e.message)


@router.get("/leetcode/{username}")
def leetcode_profile(username: str, client: LeetCodeClient = Depends(get_leetcode_client)):
	try:
		return client.profile(username)
	except IntegrationError as e:
		logger.warning(f"LeetCode profile for {username} failed: {e.message}")
		raise _upstream_error(e)


@router.get("/leetcode/{username}/submissions")
def leetcode_submissions(username: str, limit: int = 20, client: LeetCodeClient = Depends(get_leetcode_client)):
	try:
		items = client.submissions(username, limit=limit)
	except IntegrationError as e:
		logger.warning(f"LeetCode submissions for {username} failed: {e.message}")
		raise _upstream_error(e)

	out = []
	for item in items:
		row = dict(item)
		timestamp = row.get("timestamp")
		try:
			row["date"] = format_leetcode_timestamp(timestamp) if timestamp else None
		except (TypeError, ValueError):
			row["date"] = None
		row["status_color"] = get_leetcode_status_color(row.get("statusDisplay") or "")
		row["language_color"] = get_language_color(row.get("lang") or "")
		out.append(row)
	return {"items": out}


@router.get("/leetcode/{username}/solved")
def leetcode_solved(username: str, client: LeetCodeClient = Depends(get_leetcode_client)):
	try:
		return client.solved(username)
	except IntegrationError as e:
		logger.warning(f"LeetCode solved stats for {username} failed: {e.message}")
		raise _upstream_error(e)


@router.get("/gfg/potd")
def gfg_problem_of_the_day(client: GfgClient = Depends(get_gfg_client)):
	try:
		data = client.problem_of_the_day()
	except IntegrationError as e:
		# Widget phụ: lỗi thì trả placeholder thay vì làm hỏng trang
		return {"available": False, "problem": None, "error": e.message}
	return {"available": True, "problem": data}


@router.get("/codechef/contests")
def codechef_contests(client: CodeChefClient = Depends(get_codechef_client)):
	try:
		data = client.contests()
	except IntegrationError as e:
		return {"available": False, "future_contests": [], "past_contests": [], "error": e.message}
	return {"available": True, **data}


__all__ = ["router", "get_leetcode_client", "get_gfg_client", "get_codechef_client"]
