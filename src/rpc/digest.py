"""
HTTP Basic and Digest authorization helpers
Digest responses follow RFC 7616 with MD5 or SHA-256
"""

import re
import base64
import hashlib
import secrets
import logging
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

NONCE_COUNT = "00000001"

_PARAM_PATTERN = re.compile(r'([a-zA-Z0-9_]+)=("([^"]*)"|([^,]*))')

HashFunc = Callable[[str], str]


def _md5(value: str) -> str:
    return hashlib.md5(value.encode('utf-8')).hexdigest()


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode('utf-8')).hexdigest()


HASH_ALGORITHMS: Dict[str, HashFunc] = {
    'MD5': _md5,
    'SHA-256': _sha256,
}


def build_basic_authorization(username: Optional[str], password: Optional[str]) -> Optional[str]:
    if not username or not password:
        return None
    token = base64.b64encode(f"{username}:{password}".encode('utf-8')).decode('ascii')
    return f"Basic {token}"


def parse_digest_challenge(header_value: Optional[str]) -> Optional[Dict[str, str]]:
    """
    Parse a WWW-Authenticate Digest challenge into its parameters
    Returns None unless the header is a Digest challenge carrying realm and nonce
    """
    if not header_value:
        return None

    trimmed = header_value.strip()
    if not trimmed.lower().startswith('digest'):
        return None

    parameters = {}
    for match in _PARAM_PATTERN.finditer(trimmed[6:].strip()):
        key = match.group(1)
        value = match.group(3) if match.group(3) is not None else match.group(4)
        parameters[key] = (value or '').strip()

    if not parameters.get('realm') or not parameters.get('nonce'):
        return None

    return parameters


def select_hash(algorithm: Optional[str]) -> HashFunc:
    """Hash for the advertised algorithm; unknown values fall back to MD5"""
    name = (algorithm or 'MD5').upper()
    hash_func = HASH_ALGORITHMS.get(name)
    if hash_func is None:
        logger.warning(f"Unsupported digest algorithm {name}, falling back to MD5")
        return _md5
    return hash_func


def select_qop(qop_option: Optional[str]) -> Optional[str]:
    """Pick 'auth' from the offered qop list, else the first offer, else None"""
    if not qop_option:
        return None
    offered = [item.strip().lower() for item in qop_option.split(',') if item.strip()]
    if not offered:
        return None
    return 'auth' if 'auth' in offered else offered[0]


def compute_digest_response(hash_func: HashFunc, username: str, password: str, realm: str,
                            nonce: str, http_method: str, uri: str,
                            qop: Optional[str] = None, nc: str = NONCE_COUNT,
                            cnonce: Optional[str] = None) -> str:
    ha1 = hash_func(f"{username}:{realm}:{password}")
    ha2 = hash_func(f"{http_method.upper()}:{uri}")

    if qop:
        return hash_func(f"{ha1}:{nonce}:{nc}:{cnonce}:{qop}:{ha2}")
    return hash_func(f"{ha1}:{nonce}:{ha2}")


def generate_cnonce() -> str:
    return secrets.token_hex(8)


def build_digest_authorization(username: Optional[str], password: Optional[str],
                               challenge: Dict[str, str], request_path: str,
                               http_method: str = 'POST',
                               cnonce: Optional[str] = None) -> Optional[str]:
    """Build the Digest Authorization header answering a parsed challenge"""
    if not username or not password:
        return None

    realm = challenge['realm']
    nonce = challenge['nonce']
    qop = select_qop(challenge.get('qop'))
    hash_func = select_hash(challenge.get('algorithm'))
    cnonce = cnonce or generate_cnonce()

    response = compute_digest_response(
        hash_func, username, password, realm, nonce, http_method, request_path,
        qop=qop, nc=NONCE_COUNT, cnonce=cnonce
    )

    parts = [
        f'username="{username}"',
        f'realm="{realm}"',
        f'nonce="{nonce}"',
        f'uri="{request_path}"',
    ]
    if qop:
        parts.append(f'qop={qop}')
        parts.append(f'nc={NONCE_COUNT}')
        parts.append(f'cnonce="{cnonce}"')
    parts.append(f'response="{response}"')

    if challenge.get('opaque'):
        parts.append(f'opaque="{challenge["opaque"]}"')
    if challenge.get('algorithm'):
        parts.append(f'algorithm={challenge["algorithm"]}')
    if challenge.get('charset'):
        parts.append(f'charset={challenge["charset"]}')

    return f"Digest {', '.join(parts)}"
