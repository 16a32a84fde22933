"""
Registration, login and user lookups.

Passwords are stored as passlib pbkdf2 hashes. Login answers 401 for both an
unknown email and a wrong password.
"""
import structlog
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import Conflict, NotFound, Unauthorized, ValidationError
from shared.security.jwt_handler import create_access_token
from shared.security.policy import Role

from .models import User
from .repository import UserRepository
from .schemas import AuthResponse, UserCreate, UserLogin, UserResponse

logger = structlog.get_logger(__name__)

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

DEMO_USERS = [
    ("Admin User", "admin@example.com", "admin123", Role.ADMIN),
    ("John Writer", "writer@example.com", "writer123", Role.WRITER),
    ("Mike Delivery", "delivery@example.com", "delivery123", Role.DELIVERY),
]


class AuthService:

    @staticmethod
    def hash_password(password: str) -> str:
        return _pwd_context.hash(password)

    @staticmethod
    def verify_password(plain: str, hashed: str) -> bool:
        return _pwd_context.verify(plain, hashed)

    @staticmethod
    def _issue(user: User) -> AuthResponse:
        token = create_access_token(user.id, user.email, user.role, user.name)
        return AuthResponse(token=token, user=UserResponse.model_validate(user))

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate) -> AuthResponse:
        if await UserRepository.get_by_email(db, data.email):
            raise Conflict("Email already registered")
        user = User(
            name=data.name,
            email=data.email,
            hashed_password=AuthService.hash_password(data.password),
            role=data.role.value,
        )
        try:
            user = await UserRepository.create(db, user)
        except IntegrityError:
            # lost a race with another registration for the same email
            await db.rollback()
            raise Conflict("Email already registered")
        logger.info("user_registered", user_id=user.id, role=user.role)
        return AuthService._issue(user)

    @staticmethod
    async def login(db: AsyncSession, data: UserLogin) -> AuthResponse:
        user = await UserRepository.get_by_email(db, data.email)
        if not user or not AuthService.verify_password(data.password, user.hashed_password):
            logger.info("login_failed", email=data.email)
            raise Unauthorized("Invalid credentials")
        return AuthService._issue(user)

    @staticmethod
    async def get_user_by_id(db: AsyncSession, user_id: int) -> User:
        user = await UserRepository.get_by_id(db, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    @staticmethod
    async def list_by_role(db: AsyncSession, role: str):
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"Unknown role '{role}'")
        return await UserRepository.list_by_role(db, role.value)

    @staticmethod
    async def seed_demo_users(db: AsyncSession) -> None:
        """Creates one admin, writer and delivery agent when none of that role exists."""
        for name, email, password, role in DEMO_USERS:
            if await UserRepository.count(db, role.value):
                continue
            if await UserRepository.get_by_email(db, email):
                continue
            await UserRepository.create(db, User(
                name=name,
                email=email,
                hashed_password=AuthService.hash_password(password),
                role=role.value,
            ))
            logger.info("demo_user_seeded", email=email, role=role.value)
