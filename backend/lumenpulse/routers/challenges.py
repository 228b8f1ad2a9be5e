import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from lumenpulse.config import settings
from lumenpulse.database import get_db
from lumenpulse.dependencies import get_wallet_auth
from lumenpulse.errors import AuthError
from lumenpulse.middleware.rate_limit import limiter
from lumenpulse.schemas.auth import (
    ChallengeResponse,
    VerifyChallengeRequest,
    VerifyChallengeResponse,
    WalletUser,
)
from lumenpulse.services.wallet_auth_service import WalletAuthService

router = APIRouter()
logger = structlog.get_logger()


@router.get("/auth/challenge", response_model=ChallengeResponse)
@limiter.limit(settings.rate_limit_challenges)
async def get_challenge(
    request: Request,
    public_key: str = Query(..., alias="publicKey", min_length=1),
    wallet_auth: WalletAuthService = Depends(get_wallet_auth),
):
    """
    Request a Stellar wallet challenge.

    The client signs the returned transaction with its wallet key and posts
    it back to /auth/verify within five minutes.
    """
    result = wallet_auth.generate_challenge(public_key)
    return ChallengeResponse(**result)


@router.post("/auth/verify", response_model=VerifyChallengeResponse)
@limiter.limit(settings.rate_limit_verify)
async def verify_challenge(
    request: Request,
    body: VerifyChallengeRequest,
    db: Session = Depends(get_db),
    wallet_auth: WalletAuthService = Depends(get_wallet_auth),
):
    """
    Verify a signed challenge and issue a session token.

    A challenge is consumed by the first verification attempt, successful
    or not.
    """
    try:
        result = wallet_auth.verify_challenge(db, body.public_key, body.signed_challenge)
    except AuthError as e:
        logger.warning("wallet_verification_failed", error=str(e))
        raise

    return VerifyChallengeResponse(
        success=result["success"],
        token=result["token"],
        user=WalletUser(**result["user"]),
    )
