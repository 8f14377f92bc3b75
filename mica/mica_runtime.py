# mica_runtime.py

import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from mica.mica_lexer import tokenize
from mica.mica_parser import Parser
from mica.mica_interpreter import Evaluator
from mica.mica_config import RunnerConfig
from mica.mica_datatypes import ErrorValue, ErrorKind, Value
from mica.mica_printer import Printer

# Python frames consumed per Mica call, with headroom for nested expressions.
_FRAMES_PER_CALL = 40


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Optional[Value] = None
    error_message: Optional[str] = None
    side_effects: List[Dict] = field(default_factory=list)
    parse_errors: List[str] = field(default_factory=list)

    @property
    def stdout(self) -> List[str]:
        return [e.get('message', '') for e in self.side_effects if e.get('topics') == ['stdout']]

    @property
    def stderr(self) -> List[str]:
        return [e.get('message', '') for e in self.side_effects if e.get('topics') == ['stderr']]

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Scans, parses, and executes Mica code against a persistent root environment."""

    def __init__(self, config: Optional[RunnerConfig] = None):
        self.config = config or RunnerConfig()
        self.evaluator = Evaluator(self.config)
        self.root_scope = self.evaluator.globals
        self.printer = Printer()

    def _ensure_recursion_headroom(self):
        needed = self.config.max_call_depth * _FRAMES_PER_CALL
        if sys.getrecursionlimit() < needed:
            sys.setrecursionlimit(needed)

    def _error(self, msg: str, parse_errors=None) -> ExecutionResult:
        self.evaluator.side_effects.append({'topics': ['stderr'], 'message': msg})
        return ExecutionResult(
            status='error',
            error_message=msg,
            side_effects=list(self.evaluator.side_effects),
            parse_errors=list(parse_errors or []),
        )

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute a script."""
        # Clear per-run state
        self.evaluator.side_effects.clear()
        self.evaluator.call_stack.clear()

        self._ensure_recursion_headroom()

        # 1. Scan and parse
        parser = Parser(tokenize(source_code))
        try:
            program = parser.parse_program()
        except RecursionError:
            return self._error("RecursionError: host stack exhausted", parser.errors)
        for msg in parser.errors:
            self.evaluator.side_effects.append({'topics': ['stderr'], 'message': f"ParseError: {msg}"})
        if parser.errors and self.config.strict_parse:
            # The diagnostics are already recorded as side effects.
            return ExecutionResult(
                status='error',
                error_message=f"ParseError: {parser.errors[0]}",
                side_effects=list(self.evaluator.side_effects),
                parse_errors=list(parser.errors),
            )

        # 2. Evaluate
        try:
            result = self.evaluator.evaluate(program, self.root_scope)
        except RecursionError:
            self.evaluator.call_stack.clear()
            return self._error("RecursionError: host stack exhausted", parser.errors)
        except Exception as e:
            self.evaluator.call_stack.clear()
            return self._error(f"InternalError: {e}", parser.errors)

        if isinstance(result, ErrorValue) and result.kind == ErrorKind.MALFORMED:
            return self._error(result.message, parser.errors)

        return ExecutionResult(
            status='success',
            value=result,
            side_effects=list(self.evaluator.side_effects),
            parse_errors=list(parser.errors),
        )

    def format_value(self, value: Any) -> str:
        return self.printer.pformat(value)
