"""
Timing and outcome logging for export and upload operations.
"""

import time
import logging
from typing import Dict, Any, Optional, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def _describe(values: Dict[str, Any]) -> str:
    return " ".join(f"{key}={value}" for key, value in values.items())


@contextmanager
def log_operation(
    operation_name: str,
    context: Dict[str, Any],
    logger: Optional[logging.Logger] = None
) -> Iterator[Dict[str, Any]]:
    """
    Log the start, outcome and duration of ``operation_name``.

    Yields a dict the caller may fill with result figures (page counts,
    byte sizes...); they are appended to the completion line.

        with log_operation("report_compile", {"audit_id": audit_id}) as result:
            result["pages"] = 7
    """
    logger = logger or logging.getLogger(__name__)
    result: Dict[str, Any] = {}
    started = time.perf_counter()
    logger.info(f"[{operation_name}] started {_describe(context)}", extra={"operation": operation_name, "context": context})

    try:
        yield result
    except Exception as e:
        elapsed = time.perf_counter() - started
        logger.error(
            f"[{operation_name}] failed after {elapsed:.2f}s {_describe(context)}: {type(e).__name__}: {e}",
            extra={"operation": operation_name, "context": context, "duration_seconds": elapsed},
        )
        raise

    elapsed = time.perf_counter() - started
    logger.info(
        f"[{operation_name}] completed in {elapsed:.2f}s {_describe({**context, **result})}",
        extra={"operation": operation_name, "context": context, "result": result, "duration_seconds": elapsed},
    )
