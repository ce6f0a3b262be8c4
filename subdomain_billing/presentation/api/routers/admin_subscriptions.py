"""Admin endpoints for inspecting and repairing subscriptions."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ....core.dependencies import get_subscription_service
from ....services.subscription_service import ReconciliationOutcome, SubscriptionService
from ...api.dependencies import require_admin_token
from ...api.schemas.subscription_schemas import (
    ReconcileRequest,
    ReconcileResponse,
    SubscriptionResponse,
    UserSubscriptionsResponse,
    UserSummaryPageResponse,
    UserSummaryResponse,
)

router = APIRouter(
    prefix="/api/admin",
    tags=["Subscription Admin"],
    dependencies=[Depends(require_admin_token)],
)


@router.get("/users", response_model=UserSummaryPageResponse)
def list_users(
    after_id: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> UserSummaryPageResponse:
    summaries = subscription_service.list_user_summaries(after_id=after_id, limit=limit)
    return UserSummaryPageResponse(
        items=[
            UserSummaryResponse(
                id=summary.id,
                email=summary.email,
                name=summary.display_name,
                subscription_count=summary.subscription_count,
            )
            for summary in summaries
        ],
        next_after_id=summaries[-1].id if len(summaries) == limit else None,
    )


@router.get("/users/{email}/subscriptions", response_model=UserSubscriptionsResponse)
def list_user_subscriptions(
    email: str,
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> UserSubscriptionsResponse:
    report = subscription_service.get_user_subscription_report(email)
    if report is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return UserSubscriptionsResponse(
        user_id=report.user.id,
        email=report.user.email,
        subscriptions=[SubscriptionResponse.from_domain(sub) for sub in report.subscriptions],
        status_counts={status_.value: count for status_, count in report.status_counts.items()},
    )


@router.post(
    "/subscriptions/{stripe_subscription_id}/reconcile",
    response_model=ReconcileResponse,
)
def reconcile_subscription(
    stripe_subscription_id: str,
    payload: ReconcileRequest,
    subscription_service: SubscriptionService = Depends(get_subscription_service),
) -> ReconcileResponse:
    try:
        result = subscription_service.reconcile_subscription(
            stripe_subscription_id,
            provider_cancel_at_period_end=payload.provider_cancel_at_period_end,
            dry_run=payload.dry_run,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    if result.outcome is ReconciliationOutcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    if result.outcome is ReconciliationOutcome.CONFLICT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Subscription changed concurrently; retry",
        )

    return ReconcileResponse(
        outcome=result.outcome.value,
        stripe_subscription_id=stripe_subscription_id,
        provider_cancel_at_period_end=result.provider_cancel_at_period_end,
        previous_status=result.before.status.value if result.before else None,
        subscription=SubscriptionResponse.from_domain(result.after) if result.after else None,
    )
