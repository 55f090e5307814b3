from kelp.kelp_runtime import ScriptRunner, ExecutionResult, StdLib
from kelp.kelp_interpreter import Evaluator
from kelp.kelp_config import ConfigError, RuntimeConfig
from kelp.kelp_datatypes import Symbol, List, Lambda, Context
from kelp.kelp_errors import (
    Fault, TypeMismatch, IOFailure, ParseFailure,
    UnboundSymbol, ArityMismatch, EvalFailure,
)
from kelp.kelp_serialize import parse, parse_program, show

__all__ = [
    "ScriptRunner", "ExecutionResult", "StdLib", "Evaluator", "RuntimeConfig", "ConfigError",
    "Symbol", "List", "Lambda", "Context",
    "Fault", "TypeMismatch", "IOFailure", "ParseFailure",
    "UnboundSymbol", "ArityMismatch", "EvalFailure",
    "parse", "parse_program", "show",
]
