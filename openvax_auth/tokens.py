"""
Signed, expiring tokens that carry an arbitrary payload.

Tokens are never stored server-side: the token itself is the durable state of,
for example, a pending email-address change, bounded by its lifetime. A token
is ``base64url(body) + "." + hex(signature)``, where ``body`` is the
deterministic JSON serialization of the payload with its issue and expiry
times (UNIX milliseconds), and ``signature`` is an HMAC-SHA256 of ``body``
keyed with a process-wide secret.

:func:`validate` fails closed: a malformed, forged or expired token yields
``None`` and never raises.
"""

from typing import Any, Dict, Optional
from base64 import urlsafe_b64encode, urlsafe_b64decode
from datetime import datetime, timedelta
import binascii
import hashlib
import hmac
import json
import logging

from pytz import UTC

from .domain import SignedToken

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _epoch_ms(t: datetime) -> int:
    return int(round(t.timestamp() * 1000))


def _from_epoch_ms(t: int) -> datetime:
    return datetime.fromtimestamp(t / 1000, tz=UTC)


def _serialize(payload: Dict[str, Any], issued_at: int,
               expires_at: int) -> bytes:
    body = {'payload': payload, 'iat': issued_at, 'exp': expires_at}
    serialized = json.dumps(body, sort_keys=True, separators=(',', ':'))
    return serialized.encode('utf-8')


def _sign(body: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha256).digest()


def _b64encode(data: bytes) -> str:
    return urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64decode(data: str) -> bytes:
    return urlsafe_b64decode(data + '=' * (-len(data) % 4))


def issue(payload: Dict[str, Any], secret: str, ttl: int) -> str:
    """
    Generate a signed token.

    Parameters
    ----------
    payload : dict
        JSON-serializable data to carry in the token.
    secret : str
        Signing secret.
    ttl : int
        Number of seconds for which the token is valid.

    Returns
    -------
    str
        An opaque token.

    """
    issued_at = _now()
    expires_at = issued_at + timedelta(seconds=ttl)
    body = _serialize(payload, _epoch_ms(issued_at), _epoch_ms(expires_at))
    return _b64encode(body) + '.' + _sign(body, secret).hex()


def decode(token: str, secret: str) -> Optional[SignedToken]:
    """
    Check the signature on a token and unpack it.

    Expiry is not checked here; see :func:`validate`.

    Returns
    -------
    :class:`.SignedToken` or None
        ``None`` if the token is malformed or the signature does not match.

    """
    if not token or not isinstance(token, str) or '.' not in token:
        return None
    encoded, _, signature_hex = token.rpartition('.')
    try:
        body = _b64decode(encoded)
        signature = bytes.fromhex(signature_hex)
    except (binascii.Error, ValueError) as e:
        logger.debug('Token is malformed: %s', e)
        return None

    if not hmac.compare_digest(_sign(body, secret), signature):
        logger.debug('Token signature does not match')
        return None

    try:
        data = json.loads(body.decode('utf-8'))
        payload = data['payload']
        issued_at = _from_epoch_ms(int(data['iat']))
        expires_at = _from_epoch_ms(int(data['exp']))
    except (UnicodeDecodeError, ValueError, KeyError, TypeError,
            OverflowError, OSError) as e:
        logger.debug('Token body is malformed: %s', e)
        return None
    if not isinstance(payload, dict):
        return None
    return SignedToken(payload=payload, issued_at=issued_at,
                       expires_at=expires_at, signature=signature)


def validate(token: str, secret: str) -> Optional[Dict[str, Any]]:
    """
    Get the payload of a token, if it is authentic and unexpired.

    Parameters
    ----------
    token : str
        A token generated by :func:`issue`.
    secret : str
        The secret used to generate the token.

    Returns
    -------
    dict or None
        The payload, or ``None`` if the token is malformed, forged, or
        expired.

    """
    signed = decode(token, secret)
    if signed is None:
        return None
    if _now() > signed.expires_at:
        logger.debug('Token expired at %s', signed.expires_at.isoformat())
        return None
    return signed.payload
