from lumenpulse.schemas.auth import (
    ChallengeResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileResponse,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
    VerifyChallengeRequest,
    VerifyChallengeResponse,
    WalletUser,
)

__all__ = [
    "ChallengeResponse",
    "ForgotPasswordRequest",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "ProfileResponse",
    "RefreshTokenRequest",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TokenResponse",
    "UserResponse",
    "VerifyChallengeRequest",
    "VerifyChallengeResponse",
    "WalletUser",
]
