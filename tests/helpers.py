"""Token builders shared by the test modules."""
import base64
import json
import time

from tokenkeeper.models import TokenSet


def make_jwt(exp=None, sub="alice", **claims):
    """Build an unsigned JWT string carrying the given claims."""
    def _segment(obj):
        raw = base64.urlsafe_b64encode(json.dumps(obj).encode()).decode()
        return raw.rstrip("=")

    payload = {"sub": sub, **claims}
    if exp is not None:
        payload["exp"] = exp
    return f"{_segment({'alg': 'none', 'typ': 'JWT'})}.{_segment(payload)}.sig"


def fresh_exp(offset=3600):
    return int(time.time()) + offset


def make_tokens(access_exp=None, id_exp=None, with_id=True, **fields):
    access_exp = fresh_exp() if access_exp is None else access_exp
    data = {
        "access_token": make_jwt(access_exp, token_use="access"),
        "refresh_token": "refresh-1",
        "username": "alice",
    }
    if with_id:
        data["id_token"] = make_jwt(fresh_exp() if id_exp is None else id_exp, token_use="id")
    data.update(fields)
    return TokenSet.model_validate(data)
