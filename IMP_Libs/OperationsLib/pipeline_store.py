"""
Pipeline files: the batch layer behind ``imp apply --pipeline``.

A pipeline is a named, ordered list of registered operations with their
parameters, stored as JSON:

    {
      "schema_version": 1,
      "name": "posterized blur",
      "steps": [
        {"operation": "blur", "params": {}},
        {"operation": "posterize", "params": {"levels": 4}}
      ]
    }

Functions:
    create_pipeline: Build a pipeline payload from (operation, params) pairs
    validate_pipeline: Check a payload and report every problem found
    load_pipeline: Load and validate a pipeline file
    save_pipeline: Validate and write a pipeline file
    execute_pipeline: Run every step on an editor
    get_pipeline_summary: Human-readable listing of the steps
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
import json
import logging

from IMP_Libs.OperationsLib.operation_registry import OperationRegistry, get_default_registry
from IMP_Libs.constants import (
    FIELD_NAME,
    FIELD_OPERATION,
    FIELD_PARAMS,
    FIELD_SCHEMA_VERSION,
    FIELD_STEPS,
    PIPELINE_SCHEMA_VERSION,
)

logger = logging.getLogger(__name__)


def _create_step_dict(operation: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Helper to create a step dictionary with standard fields."""
    return {
        FIELD_OPERATION: str(operation),
        FIELD_PARAMS: dict(params or {}),
    }


def create_pipeline(name: str, steps: Iterable[Tuple[str, Optional[Dict[str, Any]]]]) -> Dict[str, Any]:
    """
    Build a pipeline payload.

    Args:
        name: Human-readable pipeline name
        steps: (operation, params) pairs in execution order

    Returns:
        Pipeline dictionary ready for save_pipeline()
    """
    return {
        FIELD_SCHEMA_VERSION: PIPELINE_SCHEMA_VERSION,
        FIELD_NAME: str(name),
        FIELD_STEPS: [_create_step_dict(operation, params) for operation, params in steps],
    }


def validate_pipeline(
    payload: Any,
    registry: Optional[OperationRegistry] = None,
) -> Tuple[bool, List[str]]:
    """
    Validate pipeline structure.

    Performs the following checks:
    - The payload is an object with a supported schema version
    - Steps is a list of objects with a string operation and object params
    - Every operation is registered and its params match the operation's
      declared parameters (when a registry is given)

    Args:
        payload: Decoded pipeline document
        registry: Registry used to check operations and params, or None to skip

    Returns:
        Tuple of (is_valid: bool, errors: List[str])
    """
    errors: List[str] = []

    if not isinstance(payload, dict):
        return False, [f"Pipeline must be a JSON object, got {type(payload).__name__}"]

    version = payload.get(FIELD_SCHEMA_VERSION, PIPELINE_SCHEMA_VERSION)
    if version != PIPELINE_SCHEMA_VERSION:
        errors.append(f"Unsupported schema version {version!r} (expected {PIPELINE_SCHEMA_VERSION})")

    name = payload.get(FIELD_NAME, "")
    if not isinstance(name, str):
        errors.append(f"Pipeline name must be a string, got {type(name).__name__}")

    steps = payload.get(FIELD_STEPS)
    if not isinstance(steps, list):
        errors.append("Pipeline steps must be a list")
        return False, errors

    for idx, step in enumerate(steps):
        if not isinstance(step, dict):
            errors.append(f"Step {idx}: must be an object")
            continue

        operation = step.get(FIELD_OPERATION)
        if not isinstance(operation, str) or not operation.strip():
            errors.append(f"Step {idx}: missing operation name")
        elif registry is not None and operation not in registry:
            errors.append(f"Step {idx}: unknown operation '{operation}'")
            operation = None

        params = step.get(FIELD_PARAMS, {})
        if not isinstance(params, dict):
            errors.append(f"Step {idx}: params must be an object")
        elif registry is not None and isinstance(operation, str) and operation.strip():
            errors.extend(
                f"Step {idx}: {problem}" for problem in registry.get(operation).check_params(params)
            )

    return len(errors) == 0, errors


def load_pipeline(pipeline_path: Path, registry: Optional[OperationRegistry] = None) -> Dict[str, Any]:
    """
    Load a pipeline file.

    Args:
        pipeline_path: Path to the JSON pipeline file
        registry: Registry used to check operations and params, or None to skip

    Returns:
        The normalized pipeline payload

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON or fails validation
    """
    pipeline_path = Path(pipeline_path)
    try:
        payload = json.loads(pipeline_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"{pipeline_path} is not valid JSON: {exc}") from exc

    is_valid, errors = validate_pipeline(payload, registry)
    if not is_valid:
        raise ValueError(f"Invalid pipeline {pipeline_path}: " + "; ".join(errors))

    payload.setdefault(FIELD_SCHEMA_VERSION, PIPELINE_SCHEMA_VERSION)
    payload.setdefault(FIELD_NAME, pipeline_path.stem)
    payload[FIELD_STEPS] = [
        _create_step_dict(step[FIELD_OPERATION].strip(), step.get(FIELD_PARAMS))
        for step in payload[FIELD_STEPS]
    ]
    return payload


def save_pipeline(pipeline_path: Path, payload: Dict[str, Any]) -> None:
    """
    Write a pipeline file.

    Raises:
        ValueError: If the payload fails validation
        TypeError: If a parameter value is not JSON serializable
        OSError: If the file cannot be written
    """
    is_valid, errors = validate_pipeline(payload)
    if not is_valid:
        raise ValueError("Invalid pipeline: " + "; ".join(errors))

    payload[FIELD_SCHEMA_VERSION] = PIPELINE_SCHEMA_VERSION
    Path(pipeline_path).write_text(json.dumps(payload, indent=2), encoding="utf-8")


def execute_pipeline(
    editor: Any,
    payload: Dict[str, Any],
    registry: Optional[OperationRegistry] = None,
) -> List[Any]:
    """
    Run every pipeline step on an editor, in order.

    Args:
        editor: ImpEditor instance
        payload: Pipeline from load_pipeline() or create_pipeline()
        registry: Operation registry (the default registry if None)

    Returns:
        List with the result of each step

    Raises:
        KeyError: If a step names an unregistered operation
        Exception: Any exception raised by an operation (the failing step
                   is logged first)
    """
    registry = registry or get_default_registry()
    results: List[Any] = []
    steps = payload.get(FIELD_STEPS, [])
    logger.info(f"Running pipeline '{payload.get(FIELD_NAME, '')}' ({len(steps)} steps)")

    for idx, step in enumerate(steps):
        operation = step[FIELD_OPERATION]
        params = step.get(FIELD_PARAMS, {})
        try:
            results.append(registry.execute(operation, editor, params))
        except (KeyError, ValueError, TypeError) as exc:
            logger.error(f"Step {idx} ({operation}) failed: {exc}")
            raise
    return results


def get_pipeline_summary(payload: Dict[str, Any]) -> str:
    """
    Generate human-readable summary of a pipeline.

    Example:
        >>> print(get_pipeline_summary(pipeline))
        Pipeline: posterized blur
          1. blur
          2. posterize (levels=4)
    """
    lines = [f"Pipeline: {payload.get(FIELD_NAME, '')}"]
    for idx, step in enumerate(payload.get(FIELD_STEPS, []), start=1):
        params = step.get(FIELD_PARAMS) or {}
        if params:
            rendered = ", ".join(f"{key}={value}" for key, value in params.items())
            lines.append(f"  {idx}. {step.get(FIELD_OPERATION)} ({rendered})")
        else:
            lines.append(f"  {idx}. {step.get(FIELD_OPERATION)}")
    return "\n".join(lines)
