"""
OperationsLib - Editor facade, named operations and pipelines

This module provides the ImpEditor operation surface and the batch layer
used by the command line: named operations with declared parameters and
scopes, and JSON pipeline files that chain them.
"""

from IMP_Libs.OperationsLib.editor import ImpEditor, EDGE_DETECT_SEQUENCE
from IMP_Libs.OperationsLib.operation_registry import (
    OperationRegistry,
    OperationSpec,
    SCOPES,
    get_default_registry,
    register_default_operations,
)
from IMP_Libs.OperationsLib.pipeline_store import (
    create_pipeline,
    validate_pipeline,
    load_pipeline,
    save_pipeline,
    execute_pipeline,
    get_pipeline_summary,
)

__all__ = [
    "ImpEditor",
    "EDGE_DETECT_SEQUENCE",
    "OperationRegistry",
    "OperationSpec",
    "SCOPES",
    "get_default_registry",
    "register_default_operations",
    "create_pipeline",
    "validate_pipeline",
    "load_pipeline",
    "save_pipeline",
    "execute_pipeline",
    "get_pipeline_summary",
]
