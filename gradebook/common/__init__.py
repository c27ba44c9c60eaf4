"""
Common Components for the Grading Engine

This package contains infrastructure shared across the engine's modules.

Key components:
1. Logging - Centralized logging configuration
2. Error Handling - Exception hierarchy and structured error info
3. Configuration - Settings loaded from defaults, files and environment
4. Serialization - Plain-data conversion of records
"""

# Initialize logging
from gradebook.common.logger import app_logger, grading_logger, log_execution_time

from gradebook.common.error_handling import (
    ErrorCode, ErrorSeverity, ErrorInfo, GradebookError, ValidationError,
    NotFoundError, InsufficientPoolError, DuplicateSubmissionError,
    GradingStateError, log_error
)

from gradebook.common.config import EngineConfig, get_config, reload_config

__all__ = [
    # Logging
    'app_logger', 'grading_logger', 'log_execution_time',

    # Errors
    'ErrorCode', 'ErrorSeverity', 'ErrorInfo', 'GradebookError', 'ValidationError',
    'NotFoundError', 'InsufficientPoolError', 'DuplicateSubmissionError',
    'GradingStateError', 'log_error',

    # Configuration
    'EngineConfig', 'get_config', 'reload_config',
]
