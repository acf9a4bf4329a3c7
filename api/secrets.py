"""
In-memory handling of secret values (personal access tokens, basic-auth
headers, service principal secrets).

Secrets live in a mutable buffer that is zeroed on ``clear()``. Live secrets
are tracked so that log records and error messages can be scrubbed of them.
"""
import logging
import weakref

MASK = '****'

_live_secrets = weakref.WeakSet()


class SecretValue:
    """A string secret backed by a buffer that is zeroed when cleared."""

    def __init__(self, value):
        if isinstance(value, SecretValue):
            value = value.reveal()
        self._buffer = bytearray(value.encode('utf-8'))
        self._cleared = False
        if self._buffer:
            _live_secrets.add(self)

    @property
    def cleared(self):
        return self._cleared

    def reveal(self):
        """
        Return the plaintext.

        Raises:
            ValueError: If the secret has already been cleared
        """
        if self._cleared:
            raise ValueError("Secret has already been cleared")
        return self._buffer.decode('utf-8')

    def clear(self):
        """Zero the backing buffer and forget the secret."""
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        del self._buffer[:]
        self._cleared = True
        _live_secrets.discard(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.clear()
        return False

    def __bool__(self):
        return not self._cleared and len(self._buffer) > 0

    def __repr__(self):
        return f"SecretValue('{MASK}')" if not self._cleared else "SecretValue(<cleared>)"

    __str__ = __repr__


def redact(text, *secrets):
    """
    Mask every occurrence of the given secrets, and of any live SecretValue,
    in ``text``.

    Args:
        text (str): Text that may contain secret material
        *secrets: Plain strings or SecretValue instances to mask

    Returns:
        str: The text with secrets replaced by ****
    """
    if text is None:
        return text
    text = str(text)

    candidates = []
    for secret in list(secrets) + list(_live_secrets):
        if isinstance(secret, SecretValue):
            if not secret:
                continue
            secret = secret.reveal()
        if secret:
            candidates.append(str(secret))

    # Longest first so a secret embedded in a longer one (token inside a header) is fully masked
    for secret in sorted(set(candidates), key=len, reverse=True):
        text = text.replace(secret, MASK)
    return text


class SecretRedactingFilter(logging.Filter):
    """Logging filter that masks live secrets in messages and tracebacks."""

    def filter(self, record):
        if _live_secrets:
            record.msg = redact(record.getMessage())
            record.args = None
            if record.exc_info and not record.exc_text:
                record.exc_text = redact(logging.Formatter().formatException(record.exc_info))
        return True
