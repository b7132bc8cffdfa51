from .category import (
    CategoryCreateRequest,
    CategoryDetailResponse,
    CategoryReparentRequest,
    CategoryResponse,
    CategoryTreeNode,
    CategoryUpdateRequest,
    Translation,
)
from .user import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    SignupWithEmailRequest,
    SignupWithPhoneRequest,
    UserResponse,
    VerificationRequest,
)

__all__ = [
    "AuthResponse",
    "CategoryCreateRequest",
    "CategoryDetailResponse",
    "CategoryReparentRequest",
    "CategoryResponse",
    "CategoryTreeNode",
    "CategoryUpdateRequest",
    "LoginRequest",
    "MessageResponse",
    "PasswordChangeRequest",
    "SignupWithEmailRequest",
    "SignupWithPhoneRequest",
    "Translation",
    "UserResponse",
    "VerificationRequest",
]
