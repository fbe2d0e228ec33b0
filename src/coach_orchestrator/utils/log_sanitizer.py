"""Log sanitization filter to prevent credential/PII leakage in logs.

The orchestrator handles several kinds of secrets in transit: user
access tokens (Supabase JWTs), the LLM provider key, decrypted
Intervals.icu API keys and the Basic auth header built from them, and
Fernet-encrypted credential blobs read from the database. This filter
redacts them before a record is emitted.

Usage:
    from coach_orchestrator.utils.log_sanitizer import install_log_sanitizer

    install_log_sanitizer()
"""

import logging
import re
from typing import Any


class LogSanitizationFilter(logging.Filter):
    """Logging filter that redacts sensitive information from log messages."""

    # More specific patterns must come before general ones
    PATTERNS: list[tuple[re.Pattern, str]] = [
        # Anthropic keys (sk-ant-...) before the OpenAI pattern
        (re.compile(r'\bsk-ant-[a-zA-Z0-9_-]{20,}'), '[REDACTED_ANTHROPIC_KEY]'),
        (re.compile(r'\bsk-(?:proj-)?[a-zA-Z0-9_-]{20,}'), '[REDACTED_OPENAI_KEY]'),

        # Fernet tokens (stored encrypted_api_key values)
        (re.compile(r'\bgAAAAA[a-zA-Z0-9_=-]{20,}'), '[REDACTED_FERNET_TOKEN]'),

        # JWTs (Supabase access tokens and anon keys) before Bearer
        (re.compile(r'\beyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+'), '[REDACTED_JWT]'),

        (re.compile(r'Bearer\s+[a-zA-Z0-9_\-\.]+', re.IGNORECASE), 'Bearer [REDACTED_TOKEN]'),
        # Intervals.icu uses Basic auth with the API key as password
        (re.compile(r'Basic\s+[a-zA-Z0-9+/=]+', re.IGNORECASE), 'Basic [REDACTED_CREDENTIALS]'),
        (re.compile(r'API_KEY:[^\s"\']+'), 'API_KEY:[REDACTED]'),

        (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)[^"\'&\s]+', re.IGNORECASE), r'\1[REDACTED]'),

        # Fernet keys: 44 chars of URL-safe base64 ending in '='
        (re.compile(r'(?<![A-Za-z0-9+/_=-])[A-Za-z0-9+/_-]{43}=(?![A-Za-z0-9+/_=-])'), '[REDACTED_FERNET_KEY]'),

        # key=value style secrets
        (re.compile(r'((?:encrypted_)?api_?key["\']?\s*[:=]\s*["\']?)[^"\'&\s,}]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(secret["\']?\s*[:=]\s*["\']?)[^"\'&\s,}]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)[^"\'&\s,}]+', re.IGNORECASE), r'\1[REDACTED]'),
        (re.compile(r'((?:access_|refresh_)?token["\']?\s*[:=]\s*["\']?)[^"\'&\s,}]+', re.IGNORECASE), r'\1[REDACTED]'),

        (re.compile(r'\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b'), '[REDACTED_EMAIL]'),

        # Long hex strings that might be tokens
        (re.compile(r'\b[a-fA-F0-9]{32,}\b'), '[REDACTED_HEX_TOKEN]'),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Sanitize the record in place; never drops it."""
        if record.msg:
            record.msg = self._sanitize(str(record.msg))
        if record.args:
            record.args = self._sanitize_args(record.args)
        return True

    def _sanitize(self, text: str) -> str:
        for pattern, replacement in self.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _sanitize_args(self, args: Any) -> Any:
        if isinstance(args, str):
            return self._sanitize(args)
        elif isinstance(args, tuple):
            return tuple(self._sanitize_args(arg) for arg in args)
        elif isinstance(args, list):
            return [self._sanitize_args(arg) for arg in args]
        elif isinstance(args, dict):
            return {k: self._sanitize_args(v) for k, v in args.items()}
        else:
            str_val = str(args)
            sanitized = self._sanitize(str_val)
            # Keep non-string args intact unless they carried a secret
            return sanitized if sanitized != str_val else args


def install_log_sanitizer(logger_name: str | None = None) -> None:
    """Install the sanitization filter.

    Args:
        logger_name: Install only on this logger. If None, install on the
            root logger and all of its handlers, so records propagated from
            child loggers are sanitized too.
    """
    sanitizer = LogSanitizationFilter()

    if logger_name:
        logging.getLogger(logger_name).addFilter(sanitizer)
        return

    root_logger = logging.getLogger()
    root_logger.addFilter(sanitizer)
    for handler in root_logger.handlers:
        handler.addFilter(sanitizer)


def sanitize_string(text: str) -> str:
    """Sanitize a string outside the logging system (e.g. error messages)."""
    return LogSanitizationFilter()._sanitize(text)
