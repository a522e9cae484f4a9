from .cache import CacheEntry, ResponseCache
from .errors import (
    ErrorKind,
    ExhaustedRetriesError,
    GenerationError,
    GenerationNetworkError,
    GenerationResult,
    GenerationTimeout,
    ResultSource,
    StructuralError,
    classify_error,
    is_retryable,
)
from .json_repair import UnrecoverableJSONError, clean_json_response, parse_json, repair_json
from .llm_client import CompletionClient, OpenAICompletionClient, completion_text
from .orchestrator import GenerationOrchestrator, model_parser, parse_text
from .throttle import CallThrottler

__all__ = [
    "CacheEntry",
    "CallThrottler",
    "CompletionClient",
    "ErrorKind",
    "ExhaustedRetriesError",
    "GenerationError",
    "GenerationNetworkError",
    "GenerationOrchestrator",
    "GenerationResult",
    "GenerationTimeout",
    "OpenAICompletionClient",
    "ResponseCache",
    "ResultSource",
    "StructuralError",
    "UnrecoverableJSONError",
    "classify_error",
    "clean_json_response",
    "completion_text",
    "is_retryable",
    "model_parser",
    "parse_json",
    "parse_text",
    "repair_json",
]
