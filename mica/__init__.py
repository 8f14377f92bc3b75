from mica.mica_runtime import ExecutionResult, ScriptRunner
from mica.mica_config import RunnerConfig

__all__ = ["ExecutionResult", "ScriptRunner", "RunnerConfig"]
