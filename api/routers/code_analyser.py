"""Code analyser endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from domain.ai import CodeAnalyser, get_code_analyser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/code-analyser", tags=["code-analyser"])


class AnalyzeRequest(BaseModel):
	code: str
	language: str = "javascript"


@router.post("/analyze")
def analyze_code(req: AnalyzeRequest, analyser: CodeAnalyser = Depends(get_code_analyser)):
	if not req.code.strip():
		raise HTTPException(status_code=400, detail="Please enter some code to analyse")

	result = analyser.analyze(req.code, req.language)
	logger.info(f"Analysed {len(req.code)} chars of {req.language} ({result['source']})")
	return result


__all__ = ["router"]
