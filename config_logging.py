#!/usr/bin/env python3
"""
Mutual Compare Configuration & Logging Module
=============================================
Centralized engine configuration, structured logging, and error types.

Version: module v1.0
"""

import os
import sys
import json
import logging
import uuid
import time
import functools
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Callable, Tuple
from pathlib import Path
from dataclasses import dataclass, field, replace
from contextlib import contextmanager
import threading

# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================
DEFAULT_SIMILARITY_THRESHOLD = 0.6  # Fuzzy pass threshold (standard profile)
STRICT_SIMILARITY_THRESHOLD = 0.7   # Fuzzy pass threshold (strict profile)
DEFAULT_PREVIEW_LENGTH = 50         # Placeholder preview characters
DEFAULT_DIFF_TIMEOUT = 2.0          # Max seconds per character diff
DEFAULT_DIFF_EDIT_COST = 4
DEFAULT_EMPHASIS_MAX_LENGTH = 100   # Longest emphasis run kept as an inline unit
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5MB max per log file
LOG_BACKUP_COUNT = 5                # Number of log backup files to keep

GRANULARITIES = ('structural', 'line')
PLACEHOLDER_FIDELITIES = ('dimensions', 'style')
ALIGNMENT_PASSES = ('exact', 'positional', 'fuzzy')

__version__ = '1.0.0'
VERSION = __version__
APP_NAME = "MutualCompare"

# Per-profile engine settings
PROFILES: Dict[str, Dict[str, Any]] = {
    'standard': {
        'similarity_threshold': DEFAULT_SIMILARITY_THRESHOLD,
        'preview_length': DEFAULT_PREVIEW_LENGTH,
        'granularity': 'structural',
        'placeholder_fidelity': 'dimensions',
    },
    'strict': {
        'similarity_threshold': STRICT_SIMILARITY_THRESHOLD,
        'preview_length': 100,
        'granularity': 'structural',
        'placeholder_fidelity': 'dimensions',
    },
    'line': {
        'similarity_threshold': DEFAULT_SIMILARITY_THRESHOLD,
        'preview_length': 30,
        'granularity': 'line',
        'placeholder_fidelity': 'style',
    },
}


# =============================================================================
# ERROR HANDLING
# =============================================================================

class MutualCompareError(Exception):
    """Base exception for the comparison engine."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR",
                 details: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable error dict."""
        return {
            'success': False,
            'error': {
                'code': self.code,
                'message': self.message,
                'details': self.details
            }
        }


class MalformedMarkupError(MutualCompareError):
    """Input markup could not be parsed into a tree."""
    def __init__(self, message: str, side: Optional[str] = None, **kwargs):
        super().__init__(message, code="MALFORMED_MARKUP",
                         details={'side': side, **kwargs})


class ExtractionError(MutualCompareError):
    """Style snapshot or dimension read failed for a unit."""
    def __init__(self, message: str, unit_index: Optional[int] = None, **kwargs):
        super().__init__(message, code="EXTRACTION_FAILURE",
                         details={'unit_index': unit_index, **kwargs})


class DiffError(MutualCompareError):
    """Character diff primitive failed on its input."""
    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="DIFF_FAILURE", details=kwargs)


class ConfigurationError(MutualCompareError):
    """Invalid engine configuration."""
    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, code="CONFIG_ERROR",
                         details={'errors': errors or [], **kwargs})


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class EngineConfig:
    """Engine configuration. Frozen so one run never sees a changing threshold."""

    profile: str = 'standard'

    # Alignment
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    pass_order: Tuple[str, ...] = ALIGNMENT_PASSES

    # Extraction / rendering
    granularity: str = 'structural'  # Options: structural, line
    placeholder_fidelity: str = 'dimensions'  # Options: dimensions, style
    preview_length: int = DEFAULT_PREVIEW_LENGTH
    inline_emphasis_max_length: int = DEFAULT_EMPHASIS_MAX_LENGTH
    fast_path: bool = True

    # diff-match-patch tuning
    diff_timeout: float = DEFAULT_DIFF_TIMEOUT
    diff_edit_cost: int = DEFAULT_DIFF_EDIT_COST

    # Logging
    log_level: str = "WARNING"
    log_format: str = "text"  # Options: json, text
    log_to_console: bool = True
    log_to_file: bool = False
    log_dir: Path = field(default_factory=lambda: Path.cwd() / 'logs')

    @classmethod
    def for_profile(cls, name: str, **overrides) -> 'EngineConfig':
        """Build a config from a named profile plus explicit overrides."""
        if name not in PROFILES:
            raise ConfigurationError(f"Unknown profile: {name}",
                                     errors=[f"profile must be one of {sorted(PROFILES)}"])
        settings = dict(PROFILES[name])
        settings.update(overrides)
        config = cls(profile=name, **settings)
        is_valid, errors = config.validate()
        if not is_valid:
            raise ConfigurationError("Invalid engine configuration", errors=errors)
        return config

    @classmethod
    def from_env(cls) -> 'EngineConfig':
        """Load configuration from environment variables."""
        overrides: Dict[str, Any] = {
            'fast_path': _env_bool('MC_FAST_PATH', True),
            'log_level': os.environ.get('MC_LOG_LEVEL', 'WARNING'),
            'log_format': os.environ.get('MC_LOG_FORMAT', 'text'),
            'log_to_console': _env_bool('MC_LOG_TO_CONSOLE', True),
            'log_to_file': _env_bool('MC_LOG_TO_FILE', False),
        }
        if os.environ.get('MC_LOG_DIR'):
            overrides['log_dir'] = Path(os.environ['MC_LOG_DIR'])
        if os.environ.get('MC_SIMILARITY_THRESHOLD'):
            overrides['similarity_threshold'] = float(os.environ['MC_SIMILARITY_THRESHOLD'])
        if os.environ.get('MC_PREVIEW_LENGTH'):
            overrides['preview_length'] = int(os.environ['MC_PREVIEW_LENGTH'])
        if os.environ.get('MC_GRANULARITY'):
            overrides['granularity'] = os.environ['MC_GRANULARITY']
        if os.environ.get('MC_PLACEHOLDER_FIDELITY'):
            overrides['placeholder_fidelity'] = os.environ['MC_PLACEHOLDER_FIDELITY']
        return cls.for_profile(os.environ.get('MC_PROFILE', 'standard'), **overrides)

    def with_overrides(self, **overrides) -> 'EngineConfig':
        """Return a validated copy with some fields replaced."""
        config = replace(self, **overrides)
        is_valid, errors = config.validate()
        if not is_valid:
            raise ConfigurationError("Invalid engine configuration", errors=errors)
        return config

    def validate(self) -> tuple:
        """Validate configuration and return (is_valid, errors)."""
        errors = []

        if not 0.0 <= self.similarity_threshold <= 1.0:
            errors.append("similarity_threshold must be between 0.0 and 1.0")

        if self.granularity not in GRANULARITIES:
            errors.append(f"Invalid granularity: {self.granularity}. Must be one of {GRANULARITIES}")

        if self.placeholder_fidelity not in PLACEHOLDER_FIDELITIES:
            errors.append(f"Invalid placeholder_fidelity: {self.placeholder_fidelity}. "
                          f"Must be one of {PLACEHOLDER_FIDELITIES}")

        unknown = [p for p in self.pass_order if p not in ALIGNMENT_PASSES]
        if unknown:
            errors.append(f"Unknown alignment passes: {unknown}")
        if len(set(self.pass_order)) != len(self.pass_order):
            errors.append("pass_order must not repeat a pass")

        if self.preview_length < 1:
            errors.append("preview_length must be positive")

        if self.diff_timeout < 0:
            errors.append("diff_timeout must not be negative")

        if self.log_format not in ('json', 'text'):
            errors.append(f"Invalid log_format: {self.log_format}")

        return (len(errors) == 0, errors)


# Global config instance
_config: Optional[EngineConfig] = None
_config_lock = threading.Lock()


def get_config() -> EngineConfig:
    """Get or create the global configuration."""
    global _config
    with _config_lock:
        if _config is None:
            _config = EngineConfig.from_env()
        return _config


def reset_config():
    """Reset the global configuration (for testing)."""
    global _config
    with _config_lock:
        _config = None


# =============================================================================
# STRUCTURED LOGGING
# =============================================================================

class StructuredLogger:
    """Thread-safe structured JSON logger with correlation IDs."""

    _local = threading.local()

    def __init__(self, name: str, config: Optional[EngineConfig] = None):
        self.name = name
        self.config = config or get_config()
        self._setup_logger()

    def _setup_logger(self):
        """Configure the underlying Python logger."""
        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))
        self.logger.handlers.clear()

        if self.config.log_format == 'json':
            formatter = JsonFormatter()
        else:
            formatter = logging.Formatter(
                '%(asctime)s [%(levelname)s] %(name)s - %(message)s'
            )

        if self.config.log_to_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        # Rotating file handler keeps the log dir bounded
        if self.config.log_to_file:
            from logging.handlers import RotatingFileHandler
            self.config.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.config.log_dir / f"{self.name.lower()}.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_BACKUP_COUNT,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

    @classmethod
    def set_correlation_id(cls, correlation_id: str):
        """Set correlation ID for current thread."""
        cls._local.correlation_id = correlation_id

    @classmethod
    def get_correlation_id(cls) -> str:
        """Get correlation ID for current thread."""
        return getattr(cls._local, 'correlation_id', None) or str(uuid.uuid4())[:8]

    @classmethod
    def new_correlation_id(cls) -> str:
        """Generate and set a new correlation ID."""
        correlation_id = str(uuid.uuid4())[:12]
        cls.set_correlation_id(correlation_id)
        return correlation_id

    def _build_log_record(self, level: str, message: str, **kwargs) -> Dict[str, Any]:
        """Build a structured log record."""
        return {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': level,
            'logger': self.name,
            'correlation_id': self.get_correlation_id(),
            'message': message,
            **kwargs
        }

    def _emit(self, level: int, level_name: str, message: str, exc_info: bool = False, **kwargs):
        record = self._build_log_record(level_name, message, **kwargs)
        if exc_info and self.config.log_format == 'json':
            import traceback
            record['traceback'] = traceback.format_exc()
        text = json.dumps(record, default=str) if self.config.log_format == 'json' else message
        self.logger.log(level, text, exc_info=exc_info, extra={'context': kwargs})

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._emit(logging.DEBUG, 'DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._emit(logging.INFO, 'INFO', message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._emit(logging.WARNING, 'WARNING', message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs):
        """Log error message with optional exception info."""
        self._emit(logging.ERROR, 'ERROR', message, exc_info=exc_info, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback."""
        self.error(message, exc_info=True, **kwargs)

    @contextmanager
    def log_operation(self, operation: str, **context):
        """Context manager for logging operation start/end with timing."""
        start_time = time.time()
        self.debug(f"{operation} started", operation=operation, status='started', **context)
        try:
            yield
            duration_ms = (time.time() - start_time) * 1000
            self.info(f"{operation} completed", operation=operation, status='completed',
                      duration_ms=round(duration_ms, 2), **context)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self.error(f"{operation} failed: {e}", operation=operation, status='failed',
                       duration_ms=round(duration_ms, 2), **context)
            raise


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        try:
            payload = json.loads(message)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            log_data = payload
        else:
            log_data = {
                'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                'level': record.levelname,
                'logger': record.name,
                'message': message,
            }
            context = getattr(record, 'context', None)
            if context:
                log_data.update(context)

        if record.exc_info and 'traceback' not in log_data:
            log_data['traceback'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, get_config())


# =============================================================================
# FAIL-SOFT DECORATOR
# =============================================================================

def fail_soft(fallback: Callable[..., Any], logger: Optional[StructuredLogger] = None):
    """
    Decorator that turns any failure into a fallback value.

    The wrapped call never raises; the exception is logged with traceback and
    ``fallback(*args, error=exc, **kwargs)`` is returned instead.
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            _logger = logger or get_logger(func.__module__)
            try:
                return func(*args, **kwargs)
            except MutualCompareError as e:
                _logger.error(f"{func.__name__} failed [{e.code}]: {e.message}",
                              exc_info=True, **e.details)
                return fallback(*args, error=e, **kwargs)
            except Exception as e:
                _logger.exception(f"Unexpected error in {func.__name__}: {e}")
                return fallback(*args, error=e, **kwargs)
        return wrapper
    return decorator
