"""Auth Router - Session endpoints delegated to the hosted auth service.

Mật khẩu không bao giờ đi qua DB của service này: đăng ký/đăng nhập gọi GoTrue,
còn backend chỉ xác thực access token (HS256, ký bằng JWT secret của project).
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import SessionLocal, get_db
from .settings import JWT_ALGORITHM, JWT_AUDIENCE, PROFILE_QUERY_TIMEOUT_SECONDS, SUPABASE_JWT_SECRET
from domain.derivations import is_valid_email, is_valid_username
from domain.models import Profile
from infra.clients import AuthServiceError, SupabaseAuthClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

INVALID_USERNAME_MESSAGE = "Username must be 3-20 characters long and contain only letters, numbers, and underscores."
USERNAME_TAKEN_MESSAGE = "Username is already taken. Please choose a different username."

LOGIN_ERRORS = (
	("Invalid login credentials", "Invalid email or password. Please check your credentials and try again."),
	("Email not confirmed", "Please check your email and click the confirmation link before signing in."),
	("Too many requests", "Too many login attempts. Please wait a moment and try again."),
)
SIGNUP_ERRORS = (
	("User already registered", "An account with this email already exists. Please try logging in instead."),
	("Password should be at least", "Password must be at least 6 characters long."),
	("Invalid email", "Please enter a valid email address."),
	("Signup is disabled", "Account creation is currently disabled. Please contact support."),
)


class LoginRequest(BaseModel):
	email: str
	password: str


class SignupRequest(BaseModel):
	email: str
	password: str
	username: str
	display_name: Optional[str] = None


class UsernameAvailability(BaseModel):
	username: str
	valid: bool
	available: bool


def _map_error(message: str, table, default: str) -> str:
	for needle, friendly in table:
		if needle in (message or ""):
			return friendly
	return default


def map_login_error(message: str) -> str:
	return _map_error(message, LOGIN_ERRORS, "Login failed. Please try again.")


def map_signup_error(message: str) -> str:
	return _map_error(message, SIGNUP_ERRORS, "Signup failed. Please try again.")


def get_auth_client() -> SupabaseAuthClient:
	return SupabaseAuthClient()


def decode_access_token(token: str) -> Dict[str, Any]:
	"""Giải mã access token; raise JWTError nếu chữ ký/audience/hạn dùng không hợp lệ"""
	return jwt.decode(token, SUPABASE_JWT_SECRET, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)


def get_current_claims(token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
	credentials_exception = HTTPException(
		status_code=status.HTTP_401_UNAUTHORIZED,
		detail="Could not validate credentials",
		headers={"WWW-Authenticate": "Bearer"},
	)
	try:
		payload = decode_access_token(token)
	except JWTError:
		raise credentials_exception
	if not payload.get("sub"):
		raise credentials_exception
	payload["access_token"] = token
	return payload


def get_current_user_id(claims: Dict[str, Any] = Depends(get_current_claims)) -> str:
	return str(claims["sub"])


def get_current_user(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)) -> Profile:
	"""Profile của user hiện tại; 401 nếu token hợp lệ nhưng chưa có profile"""
	profile = db.query(Profile).filter(Profile.id == user_id).first()
	if profile is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Profile not found for this account")
	return profile


def get_user_id_from_authorization_header(authorization: Optional[str]) -> Optional[str]:
	"""Trích `user_id` từ header Authorization (Bearer token).

	Dùng cho các endpoint **cho phép anonymous**: nếu client có gửi token thì
	backend tận dụng để cá nhân hóa dữ liệu (user_stats, is_liked, user_rank...).

	- Trả về `None` nếu không có/không hợp lệ.
	- Không raise lỗi để tránh làm hỏng luồng anonymous.
	"""
	if not authorization:
		return None

	parts = authorization.split()
	if len(parts) != 2 or parts[0].lower() != "bearer":
		return None

	try:
		sub = decode_access_token(parts[1]).get("sub")
	except JWTError:
		return None
	return str(sub) if sub else None


def username_taken(db: Session, username: str, exclude_id: Optional[str] = None) -> bool:
	q = db.query(Profile.id).filter(Profile.username == username)
	if exclude_id:
		q = q.filter(Profile.id != exclude_id)
	return q.first() is not None


def _claims_username(claims: Dict[str, Any]) -> Optional[str]:
	metadata = claims.get("user_metadata") or {}
	return metadata.get("username") if isinstance(metadata, dict) else None


def default_user_from_claims(claims: Dict[str, Any]) -> Dict[str, Any]:
	"""User tạm dựng từ token khi không tải được profile kịp thời"""
	user_id = str(claims.get("sub"))
	email = claims.get("email") or ""
	metadata = claims.get("user_metadata") or {}
	username = _claims_username(claims) or (email.split("@")[0] if email else f"user_{user_id[:8]}")
	return {
		"id": user_id,
		"username": username,
		"email": email,
		"display_name": metadata.get("display_name") or username,
		"avatar_url": metadata.get("avatar_url"),
		"bio": None,
		"followers_count": 0,
		"following_count": 0,
		"posts_count": 0,
		"verified": False,
		"is_default": True,
	}


def load_or_create_profile(db: Session, claims: Dict[str, Any]) -> Dict[str, Any]:
	"""Profile của token subject; tạo profile mặc định nếu chưa có"""
	user_id = str(claims["sub"])
	profile = db.query(Profile).filter(Profile.id == user_id).first()
	if profile is None:
		username = _claims_username(claims)
		if not is_valid_username(username) or username_taken(db, username):
			username = f"user_{user_id.replace('-', '')[:8]}"
		metadata = claims.get("user_metadata") or {}
		profile = Profile(
			id=user_id,
			username=username,
			email=claims.get("email") or "",
			display_name=metadata.get("display_name") or username,
			avatar_url=metadata.get("avatar_url"),
		)
		db.add(profile)
		try:
			db.commit()
		except IntegrityError:
			# Hai lần đăng nhập đầu tiên chạy song song: request kia đã tạo profile
			db.rollback()
			profile = db.query(Profile).filter(Profile.id == user_id).first()
			if profile is None:
				raise
		else:
			db.refresh(profile)
			logger.info(f"Created default profile for user {user_id}")

	data = profile.to_dict()
	data["is_default"] = False
	return data


def _load_profile_in_own_session(bind, claims: Dict[str, Any]) -> Dict[str, Any]:
	"""Chạy trong worker thread với session riêng, không dùng chung session của request"""
	db = SessionLocal(bind=bind)
	try:
		return load_or_create_profile(db, claims)
	finally:
		db.close()


@router.post("/signup")
def signup(req: SignupRequest, db: Session = Depends(get_db), client: SupabaseAuthClient = Depends(get_auth_client)):
	if not is_valid_username(req.username):
		raise HTTPException(status_code=400, detail=INVALID_USERNAME_MESSAGE)
	if not is_valid_email(req.email):
		raise HTTPException(status_code=400, detail="Please enter a valid email address.")
	if username_taken(db, req.username):
		raise HTTPException(status_code=400, detail=USERNAME_TAKEN_MESSAGE)

	try:
		result = client.sign_up(
			req.email,
			req.password,
			{"username": req.username, "display_name": req.display_name or req.username},
		)
	except AuthServiceError as e:
		logger.warning(f"Signup rejected for {req.email}: {e.message}")
		raise HTTPException(status_code=400, detail=map_signup_error(e.message))

	# Khi bật xác nhận email, GoTrue trả về user trực tiếp (không có session)
	user = result.get("user") or result
	user_id = user.get("id")
	if not user_id:
		logger.error("Signup response did not include a user id")
		raise HTTPException(status_code=502, detail="Signup failed. Please try again.")

	if db.query(Profile.id).filter(Profile.id == user_id).first() is None:
		db.add(Profile(
			id=user_id,
			username=req.username,
			email=req.email,
			display_name=req.display_name or req.username,
		))
		db.commit()

	access_token = result.get("access_token")
	return {
		"user": {"id": user_id, "email": req.email, "username": req.username},
		"access_token": access_token,
		"refresh_token": result.get("refresh_token"),
		"requires_confirmation": access_token is None,
	}


@router.post("/login")
def login(req: LoginRequest, client: SupabaseAuthClient = Depends(get_auth_client)):
	try:
		session = client.sign_in(req.email, req.password)
	except AuthServiceError as e:
		logger.warning(f"Login rejected for {req.email}: {e.message}")
		raise HTTPException(status_code=401, detail=map_login_error(e.message))

	return {
		"access_token": session.get("access_token"),
		"refresh_token": session.get("refresh_token"),
		"expires_in": session.get("expires_in"),
		"token_type": "bearer",
		"user": session.get("user"),
	}


@router.post("/logout")
def logout(claims: Dict[str, Any] = Depends(get_current_claims), client: SupabaseAuthClient = Depends(get_auth_client)):
	try:
		client.sign_out(claims["access_token"])
	except AuthServiceError as e:
		# Token vẫn hết hiệu lực phía client; chỉ ghi log
		logger.warning(f"Sign out failed for {claims.get('sub')}: {e.message}")
		return {"success": False, "detail": e.message}
	return {"success": True}


@router.get("/me")
async def me(claims: Dict[str, Any] = Depends(get_current_claims), db: Session = Depends(get_db)):
	"""Profile của user hiện tại.

	Việc tải profile được giới hạn bởi PROFILE_QUERY_TIMEOUT_SECONDS; quá hạn hoặc
	lỗi truy vấn thì trả về user mặc định dựng từ token để UI không bị treo.
	"""
	try:
		return await asyncio.wait_for(
			asyncio.to_thread(_load_profile_in_own_session, db.get_bind(), claims),
			timeout=PROFILE_QUERY_TIMEOUT_SECONDS,
		)
	except asyncio.TimeoutError:
		logger.warning(f"Profile query timed out after {PROFILE_QUERY_TIMEOUT_SECONDS}s, using default user")
		return default_user_from_claims(claims)
	except Exception as e:
		logger.error(f"Profile query failed for {claims.get('sub')}, using default user: {e}")
		return default_user_from_claims(claims)


@router.get("/username-available", response_model=UsernameAvailability)
def username_available(username: str, db: Session = Depends(get_db)):
	valid = is_valid_username(username)
	available = valid and not username_taken(db, username)
	return {"username": username, "valid": valid, "available": available}


__all__ = [
	"router",
	"get_current_claims",
	"get_current_user_id",
	"get_current_user",
	"get_user_id_from_authorization_header",
	"decode_access_token",
	"map_login_error",
	"map_signup_error",
]
