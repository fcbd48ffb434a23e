import logging
from datetime import datetime, timedelta, timezone
from typing import Tuple

import jwt
from passlib.hash import pbkdf2_sha256
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from app.config import Settings
from app.db import next_id
from app.errors import Forbidden, ValidationError
from app.models import User, utcnow

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.users = db["users"]
        self.secret = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.token_ttl = timedelta(hours=settings.token_ttl_hours)
        self.remember_me_ttl = timedelta(days=settings.remember_me_ttl_days)

        if self.secret == "change-me":
            logger.warning("JWT_SECRET is not set; tokens are signed with the default secret")

    def issue_token(self, user: User, remember_me: bool = False) -> str:
        lifetime = self.remember_me_ttl if remember_me else self.token_ttl
        payload = {
            'sub': str(user.id),
            'email': user.email,
            'exp': datetime.now(timezone.utc) + lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> dict:
        """
        Verify a bearer token.
        Returns: {'id': int, 'email': str}
        """
        try:
            decoded = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return {'id': int(decoded['sub']), 'email': decoded.get('email')}
        except (jwt.PyJWTError, KeyError, ValueError):
            raise Forbidden()

    def register(self, email: str, password: str, confirm_password: str) -> Tuple[User, str]:
        if not email or not password or not confirm_password:
            raise ValidationError("All fields are required")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        email = email.strip()
        if self.users.find_one({'email': email}, {'_id': 1}):
            raise ValidationError("User already exists")

        user = User(id=next_id(self.db, "users"), email=email, created_at=utcnow())
        try:
            self.users.insert_one({
                '_id': user.id,
                'email': user.email,
                'password_hash': pbkdf2_sha256.hash(password),
                'created_at': user.created_at,
            })
        except DuplicateKeyError:
            raise ValidationError("User already exists")

        logger.info(f"Registered user {user.id}")
        return user, self.issue_token(user)

    def login(self, email: str, password: str, remember_me: bool = False) -> Tuple[User, str]:
        if not email or not password:
            raise ValidationError("Email and password are required")

        doc = self.users.find_one({'email': email.strip()})
        if not doc or not pbkdf2_sha256.verify(password, doc['password_hash']):
            raise ValidationError("Invalid credentials")

        user = User(id=doc['_id'], email=doc['email'], created_at=doc['created_at'])
        return user, self.issue_token(user, remember_me)
