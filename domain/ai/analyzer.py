"""
Code Analyser - LLM analysis với fallback phân tích tĩnh
Trả về structure / explanation / suggestions / visualization cho trang Code Analyser
"""

import ast
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from app.settings import GROQ_MODEL
from infra.utils.llm_utils import (
    create_groq_completion,
    extract_groq_content,
    extract_json_object,
    get_groq_client,
)

logger = logging.getLogger(__name__)

RESULT_KEYS = ("structure", "explanation", "suggestions", "visualization")

ANALYSIS_PROMPT = """Analyze this {language} code and provide a detailed analysis:

{code}

Return ONLY a JSON object with the following structure:
{{
  "structure": {{
    "type": "Object-Oriented | Functional | Procedural",
    "components": [{{"name": "string", "count": 0}}],
    "complexity": "Low | Medium | High",
    "lineCount": 0,
    "commentLines": 0
  }},
  "explanation": {{"summary": "string", "steps": ["string"]}},
  "suggestions": [
    {{"type": "improvement | warning | refactor | info", "title": "string", "description": "string"}}
  ],
  "visualization": {{
    "frames": [
      {{
        "lineNumber": 0,
        "codeSnippet": "string",
        "description": "string",
        "objects": [{{"name": "string", "type": "string", "value": "string", "change": "created|modified|unchanged"}}]
      }}
    ]
  }}
}}

Focus on providing accurate analysis with helpful suggestions.
For the visualization, show how variables and data structures change during execution."""

# Từ khóa rẽ nhánh dùng để ước lượng độ phức tạp
BRANCH_KEYWORDS = ("if", "elif", "else if", "switch", "case", "for", "while", "catch", "except")
ERROR_HANDLING = re.compile(r"\b(try|catch|except)\b")
COMMENT_PREFIXES = ("//", "#", "/*", "*")


@dataclass
class CodeFacts:
    """Số liệu cấu trúc đo được từ code"""
    classes: int = 0
    functions: int = 0
    loops: int = 0
    conditionals: int = 0
    data_structures: int = 0
    branches: int = 0
    has_error_handling: bool = False
    # (line, name, value) theo thứ tự xuất hiện
    assignments: List[tuple] = field(default_factory=list)
    call_lines: List[int] = field(default_factory=list)


class StructureVisitor(ast.NodeVisitor):
    """AST Visitor đếm các thành phần cấu trúc của Python code"""

    def __init__(self, source: str):
        self.source = source
        self.facts = CodeFacts()

    def visit_ClassDef(self, node):
        self.facts.classes += 1
        self.generic_visit(node)

    def visit_FunctionDef(self, node):
        self.facts.functions += 1
        self.generic_visit(node)

    visit_AsyncFunctionDef = visit_FunctionDef

    def _loop(self, node):
        self.facts.loops += 1
        self.facts.branches += 1
        self.generic_visit(node)

    visit_For = _loop
    visit_AsyncFor = _loop
    visit_While = _loop

    def visit_If(self, node):
        self.facts.conditionals += 1
        self.facts.branches += 1
        self.generic_visit(node)

    def visit_IfExp(self, node):
        self.facts.conditionals += 1
        self.facts.branches += 1
        self.generic_visit(node)

    def visit_Try(self, node):
        self.facts.has_error_handling = True
        self.facts.branches += len(node.handlers)
        self.generic_visit(node)

    def _collection(self, node):
        self.facts.data_structures += 1
        self.generic_visit(node)

    visit_List = _collection
    visit_Dict = _collection
    visit_Set = _collection
    visit_ListComp = _collection
    visit_DictComp = _collection
    visit_SetComp = _collection

    def visit_Assign(self, node):
        value = ast.get_source_segment(self.source, node.value) or ast.dump(node.value)
        for target in node.targets:
            if isinstance(target, ast.Name):
                self.facts.assignments.append((node.lineno, target.id, value))
            elif isinstance(target, ast.Tuple):
                for elt in target.elts:
                    if isinstance(elt, ast.Name):
                        self.facts.assignments.append((node.lineno, elt.id, value))
        self.generic_visit(node)

    def visit_AugAssign(self, node):
        if isinstance(node.target, ast.Name):
            value = ast.get_source_segment(self.source, node) or ""
            self.facts.assignments.append((node.lineno, node.target.id, value))
        self.generic_visit(node)

    def visit_Call(self, node):
        self.facts.call_lines.append(node.lineno)
        self.generic_visit(node)


def _count_words(code: str, word: str) -> int:
    return len(re.findall(r"(?<![\w])" + re.escape(word) + r"(?![\w])", code))


def _python_facts(code: str) -> Optional[CodeFacts]:
    try:
        tree = ast.parse(code)
    except SyntaxError:
        return None
    visitor = StructureVisitor(code)
    visitor.visit(tree)
    facts = visitor.facts
    facts.assignments.sort(key=lambda a: a[0])
    return facts


ASSIGNMENT_PATTERNS = (
    re.compile(r"^\s*(?:var|let|const)\s+(\w+)\s*=\s*(.+?);?\s*$"),
    re.compile(r"^\s*(?:[\w<>\[\],]+\s+)?(\w+)\s*=(?!=)\s*(.+?);?\s*$"),
)


def _heuristic_facts(code: str) -> CodeFacts:
    """Ước lượng bằng từ khóa cho các ngôn ngữ không parse được"""
    facts = CodeFacts()
    facts.classes = _count_words(code, "class")
    facts.functions = _count_words(code, "function") + _count_words(code, "def") + _count_words(code, "func") + _count_words(code, "fn")
    facts.loops = _count_words(code, "for") + _count_words(code, "while")
    facts.conditionals = _count_words(code, "if") + _count_words(code, "switch") + code.count("?")
    facts.data_structures = code.count("[")
    facts.branches = sum(_count_words(code, kw) for kw in BRANCH_KEYWORDS) + code.count("?")
    facts.has_error_handling = bool(ERROR_HANDLING.search(code))

    for lineno, line in enumerate(code.split("\n"), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIXES):
            continue
        if not any(op in stripped for op in ("==", "!=", "<=", ">=")):
            for pattern in ASSIGNMENT_PATTERNS:
                match = pattern.match(line)
                if match:
                    facts.assignments.append((lineno, match.group(1), match.group(2).strip()))
                    break
        if "(" in stripped and ")" in stripped and not re.match(r"^(def|function|class|if|for|while|switch)\b", stripped):
            facts.call_lines.append(lineno)
    return facts


def complexity_bucket(branches: int) -> str:
    if branches <= 5:
        return "Low"
    if branches <= 15:
        return "Medium"
    return "High"


def count_comment_lines(code: str) -> int:
    return sum(
        1 for line in code.split("\n")
        if line.strip().startswith(("//", "#", "/*")) or "*/" in line
    )


def _value_type(value: str) -> str:
    value = value.strip()
    if value.startswith("[") or value.startswith("list("):
        return "list"
    if value.startswith("{") or value.startswith("dict("):
        return "dict"
    if value[:1] in ("'", '"', "`"):
        return "string"
    try:
        float(value)
        return "number"
    except ValueError:
        return "unknown"


def build_frames(lines: List[str], facts: CodeFacts) -> List[Dict[str, Any]]:
    """Frames trực quan hóa: mỗi lần gán biến, rồi mỗi dòng có lời gọi hàm"""
    frames = []
    variables: Dict[str, Dict[str, str]] = {}

    def snapshot(changed: Optional[str], change: str) -> List[Dict[str, str]]:
        return [
            {
                "name": name,
                "type": details["type"],
                "value": details["value"],
                "change": change if name == changed else "unchanged",
            }
            for name, details in variables.items()
        ]

    for lineno, name, value in facts.assignments:
        is_new = name not in variables
        variables[name] = {"type": _value_type(value), "value": value}
        frames.append({
            "lineNumber": lineno,
            "codeSnippet": lines[lineno - 1].strip() if 0 < lineno <= len(lines) else "",
            "description": f"Variable {name} is {'initialized' if is_new else 'updated'} with value {value}",
            "objects": snapshot(name, "created" if is_new else "modified"),
        })

    for lineno in sorted(set(facts.call_lines)):
        frames.append({
            "lineNumber": lineno,
            "codeSnippet": lines[lineno - 1].strip() if 0 < lineno <= len(lines) else "",
            "description": "Function call executed",
            "objects": snapshot(None, "unchanged"),
        })

    if not frames:
        frames.append({
            "lineNumber": 1,
            "codeSnippet": (lines[0].strip() if lines else "") or "No code",
            "description": "Code execution starts",
            "objects": [],
        })
    return frames


def build_suggestions(structure: Dict[str, Any], facts: CodeFacts) -> List[Dict[str, str]]:
    suggestions = []
    line_count = structure["lineCount"]

    if structure["commentLines"] < line_count * 0.1:
        suggestions.append({
            "type": "improvement",
            "title": "Add more comments",
            "description": "Your code has few comments. Consider adding more documentation to improve readability and maintainability.",
        })
    if structure["complexity"] == "High":
        suggestions.append({
            "type": "warning",
            "title": "High complexity detected",
            "description": "Consider breaking down complex logic into smaller, more manageable functions or methods.",
        })
    if line_count > 50 and facts.functions == 1:
        suggestions.append({
            "type": "refactor",
            "title": "Long function detected",
            "description": "Consider breaking down this long function into smaller, more focused functions.",
        })
    if not facts.has_error_handling:
        suggestions.append({
            "type": "improvement",
            "title": "Add error handling",
            "description": "Your code lacks error handling. Consider adding try-catch blocks to handle potential exceptions.",
        })

    if not suggestions:
        suggestions.append({
            "type": "info",
            "title": "Code looks good",
            "description": "No major issues detected. Your code follows good practices.",
        })
    return suggestions


def build_explanation(language: str, structure: Dict[str, Any], facts: CodeFacts) -> Dict[str, Any]:
    paradigm = structure["type"]
    level = structure["complexity"].lower()
    lines = structure["lineCount"]

    if paradigm == "Object-Oriented":
        summary = (f"This is an object-oriented {language} program that defines {facts.classes} classes. "
                   f"The code has a {level} complexity level with {lines} lines of code.")
        steps = [
            "Class definitions are loaded into memory",
            "Constructor methods initialize object instances",
            "Class methods are called based on program flow",
        ]
    elif paradigm == "Functional":
        summary = (f"This is a functional {language} program with {facts.functions} functions. "
                   f"The code has a {level} complexity level with {lines} lines of code.")
        steps = [
            "Function definitions are loaded into memory",
            "Main program execution begins",
            "Functions are called as needed during execution",
        ]
    else:
        summary = (f"This is a procedural {language} program with a {level} complexity level. "
                   f"It contains {lines} lines of code with a straightforward execution flow.")
        steps = [
            "Program execution begins from the top",
            "Code executes sequentially line by line",
        ]
        if facts.loops:
            steps.append("Loop iterations execute until termination condition is met")
        if facts.conditionals:
            steps.append("Conditional branches direct program flow based on conditions")

    return {"summary": summary, "steps": steps}


def local_analysis(code: str, language: str) -> Dict[str, Any]:
    """
    Phân tích tĩnh không cần LLM.
    Python parse được thì đo bằng AST, còn lại ước lượng theo từ khóa.
    """
    facts = None
    if (language or "").lower() == "python":
        facts = _python_facts(code)
    if facts is None:
        facts = _heuristic_facts(code)

    lines = code.split("\n")
    if facts.classes:
        paradigm = "Object-Oriented"
    elif facts.functions:
        paradigm = "Functional"
    else:
        paradigm = "Procedural"

    components = [
        {"name": name, "count": count}
        for name, count in (
            ("Classes", facts.classes),
            ("Functions", facts.functions),
            ("Loops", facts.loops),
            ("Data Structures", facts.data_structures),
            ("Conditionals", facts.conditionals),
        )
        if count
    ]

    structure = {
        "type": paradigm,
        "components": components,
        "complexity": complexity_bucket(facts.branches),
        "lineCount": len(lines),
        "commentLines": count_comment_lines(code),
    }

    return {
        "structure": structure,
        "explanation": build_explanation(language, structure, facts),
        "suggestions": build_suggestions(structure, facts),
        "visualization": {"frames": build_frames(lines, facts)},
    }


def _valid_llm_result(data: Dict[str, Any]) -> bool:
    if any(key not in data for key in RESULT_KEYS):
        return False
    return (
        isinstance(data["structure"], dict)
        and isinstance(data["explanation"], dict)
        and isinstance(data["suggestions"], list)
        and isinstance(data["visualization"], dict)
    )


class CodeAnalyser:
    """
    Phân tích code bằng LLM (Groq), fallback sang phân tích tĩnh khi LLM lỗi.
    """

    def __init__(self, client=None, model: str = GROQ_MODEL):
        self._client = client
        self.model = model

    def _get_client(self):
        if self._client is None:
            self._client = get_groq_client()
        return self._client

    def analyze_with_llm(self, code: str, language: str) -> Dict[str, Any]:
        client = self._get_client()
        messages = [
            {"role": "system", "content": "You are a code analysis engine. Reply with a single JSON object and nothing else."},
            {"role": "user", "content": ANALYSIS_PROMPT.format(language=language, code=code)},
        ]
        response = create_groq_completion(client, messages, model=self.model, temperature=0.2)
        data = extract_json_object(extract_groq_content(response))
        if not _valid_llm_result(data):
            raise ValueError("LLM response is missing analysis sections")
        return {key: data[key] for key in RESULT_KEYS}

    def analyze(self, code: str, language: str) -> Dict[str, Any]:
        try:
            result = self.analyze_with_llm(code, language)
            result["source"] = "llm"
            return result
        except Exception as e:
            logger.warning(f"LLM analysis failed, using local analysis: {e}")

        result = local_analysis(code, language)
        result["source"] = "fallback"
        return result


# Singleton instance
_analyser: Optional[CodeAnalyser] = None


def get_code_analyser() -> CodeAnalyser:
    """Get singleton instance of CodeAnalyser"""
    global _analyser
    if _analyser is None:
        _analyser = CodeAnalyser()
    return _analyser
