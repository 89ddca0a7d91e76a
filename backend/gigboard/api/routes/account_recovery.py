"""Account Routes — signup, login, password reset and email verification.

Invariants:
    - Signup and login return an access token with the user; admins can log in but
      never sign up here
    - Reset requests answer the same way whether or not the account exists
    - A successful reset returns a fresh access token
"""

from fastapi import APIRouter, Depends, Query, status

from gigboard.api.deps import (
    get_account_recovery_service, get_account_service, get_actor, get_read_views,
)
from gigboard.schemas.accounts import (
    ClientSignup, EmailVerificationConfirm, EmailVerificationRequest, FreelancerSignup,
    LoginRequest, PasswordResetConfirm, PasswordResetRequest,
)
from gigboard.services.account_recovery import AccountRecoveryService
from gigboard.services.accounts import AccountService
from gigboard.services.actors import Actor
from gigboard.services.read_views import ReadViews, client_dict, freelancer_dict, user_dict

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

RESET_REQUESTED = "If an account exists for this email, a reset code has been sent"


@router.post("/client/signup", status_code=status.HTTP_201_CREATED)
async def client_signup(
    body: ClientSignup,
    service: AccountService = Depends(get_account_service),
):
    fields = body.model_dump(exclude={"name", "email", "password"})
    client, token = await service.register_client(
        body.name, body.email, body.password, **fields,
    )
    return {
        "message": "Client account created",
        "token": token,
        "user": user_dict(client.user),
        "client": client_dict(client),
    }


@router.post("/freelancer/signup", status_code=status.HTTP_201_CREATED)
async def freelancer_signup(
    body: FreelancerSignup,
    service: AccountService = Depends(get_account_service),
):
    fields = body.model_dump(exclude={"name", "email", "password"})
    freelancer, token = await service.register_freelancer(
        body.name, body.email, body.password, **fields,
    )
    return {
        "message": "Freelancer account created",
        "token": token,
        "user": user_dict(freelancer.user),
        "freelancer": freelancer_dict(freelancer),
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    service: AccountService = Depends(get_account_service),
):
    user, token = await service.login(body.role, body.email, body.password)
    return {"message": "Login successful", "token": token, "user": user_dict(user)}


@router.get("/me")
async def me(
    actor: Actor = Depends(get_actor),
    views: ReadViews = Depends(get_read_views),
):
    read = await views.account(actor)
    return {"user": read.data, "cached": read.cached}


@router.post("/password-reset/request")
async def request_password_reset(
    body: PasswordResetRequest,
    service: AccountRecoveryService = Depends(get_account_recovery_service),
):
    await service.request_password_reset(body.role, body.email)
    return {"message": RESET_REQUESTED}


@router.post("/password-reset/confirm")
async def confirm_password_reset(
    body: PasswordResetConfirm,
    service: AccountRecoveryService = Depends(get_account_recovery_service),
):
    user, token = await service.reset_password(
        body.role, body.email, body.otp, body.new_password,
    )
    return {
        "message": "Password reset successfully",
        "token": token,
        "user": user_dict(user),
    }


@router.post("/email-verification/send")
async def send_email_verification(
    body: EmailVerificationRequest,
    service: AccountRecoveryService = Depends(get_account_recovery_service),
):
    await service.send_email_verification(body.email)
    return {"message": "Verification code sent"}


@router.post("/email-verification/verify")
async def verify_email(
    body: EmailVerificationConfirm,
    service: AccountRecoveryService = Depends(get_account_recovery_service),
):
    await service.verify_email(body.email, body.otp)
    return {"message": "Email verified", "verified": True}


@router.get("/email-verification/status")
async def email_verification_status(
    email: str = Query(min_length=3, max_length=255),
    service: AccountRecoveryService = Depends(get_account_recovery_service),
):
    return {"email": email.lower(), "verified": await service.is_email_verified(email)}
