"""Verified identities for socket connections.

The game only needs an opaque user id and a display name. Tokens are
signed with the app's ``SECRET_KEY``; anything able to mint them (the
``issue-token`` CLI command, or an upstream login service sharing the
key) acts as the identity provider.
"""

from dataclasses import dataclass
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer


class AuthenticationError(Exception):
    pass


@dataclass(frozen=True)
class VerifiedIdentity:
    uid: str
    name: str


class TokenVerifier:
    salt = 'quizroom-identity'

    def __init__(self, secret_key: str, max_age: Optional[int] = None):
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self.salt)

    def issue(self, uid: str, name: Optional[str] = None) -> str:
        return self._serializer.dumps({'uid': str(uid), 'name': name})

    def verify(self, token) -> VerifiedIdentity:
        if not isinstance(token, str) or not token:
            raise AuthenticationError('missing token')
        try:
            data = self._serializer.loads(token, max_age=self.max_age)
        except SignatureExpired:
            raise AuthenticationError('token expired')
        except BadSignature:
            raise AuthenticationError('invalid token')
        uid = data.get('uid') if isinstance(data, dict) else None
        if not uid:
            raise AuthenticationError('token has no uid')
        return VerifiedIdentity(uid=str(uid), name=data.get('name') or 'Anonymous')
