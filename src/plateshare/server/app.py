"""ASGI application for Plateshare."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from datetime import datetime
from time import perf_counter
from typing import Literal, Optional
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from plateshare import __version__, metrics
from plateshare.config import Settings, get_settings
from plateshare.db import accounts as account_store
from plateshare.db import notifications as inbox
from plateshare.db import requests as request_store
from plateshare.db import stats
from plateshare.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientQuantityError,
    InvalidStateError,
    NotFoundError,
    PlateshareError,
)
from plateshare.lifecycle.base import NotificationSink
from plateshare.lifecycle.manager import LifecycleManager
from plateshare.logging_utils import configure_logging as configure_app_logging
from plateshare.models.account import (
    DashboardStats,
    Restaurant,
    RestaurantDetail,
    RestaurantPage,
    User,
    UserDetail,
    UserPage,
)
from plateshare.models.listing import FoodListing, FoodListingPage, ListingStatus
from plateshare.models.notification import Notification, NotificationKind, RecipientKind
from plateshare.models.request import (
    FoodRequest,
    FoodRequestDetail,
    FoodRequestPage,
    RequestStatus,
)
from plateshare.notifications.reminders import ExpiryReminder
from plateshare.notifications.service import NotificationService
from plateshare.server import deps

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_400_BAD_REQUEST,
    InsufficientQuantityError: status.HTTP_400_BAD_REQUEST,
}

_NULLABLE_LISTING_FIELDS = {"category", "pickup_time"}


def _changes(payload: BaseModel) -> dict:
    changes = {key: value for key, value in payload.model_dump().items() if value is not None}
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields provided for update",
        )
    return changes


def _configure_logging(settings: Settings) -> None:
    configure_app_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    _configure_logging(settings)

    application = FastAPI(title="Plateshare", version=__version__)

    if settings.expiry_reminder_enabled:
        reminder = ExpiryReminder(
            NotificationService(enabled=settings.notifications_enabled),
            window_hours=settings.expiry_reminder_window_hours,
        )
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            reminder.run_once,
            "interval",
            minutes=settings.expiry_reminder_interval_minutes,
            max_instances=1,
            coalesce=True,
        )

        @application.on_event("startup")
        async def start_expiry_reminders() -> None:
            scheduler.start()

        @application.on_event("shutdown")
        async def stop_expiry_reminders() -> None:
            scheduler.shutdown(wait=False)

    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("plateshare.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details and record request metrics."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            path = request.url.path
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                    duration_ms / 1000.0
                )
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(
                method=method,
                path=path,
                status=str(response.status_code),
            ).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                duration_ms / 1000.0
            )
            return response

    @application.exception_handler(PlateshareError)
    async def domain_exception_handler(request: Request, exc: PlateshareError):
        status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        logger.info(
            "%s %s rejected (%s): %s",
            request.method,
            request.url.path,
            exc.kind,
            exc.message,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(status_code=status_code, content={"detail": exc.message})

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {key: value for key, value in error.items() if key in {"loc", "msg", "type"}}
            for error in exc.errors()
        ]
        logger.warning(
            "Validation error on %s %s: %s",
            request.method,
            request.url.path,
            errors,
            extra={"request_id": getattr(request.state, "request_id", None)},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @application.get("/health", summary="Liveness probe")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Accounts -----------------------------------------------------------------

    @application.post(
        "/restaurants",
        response_model=Restaurant,
        status_code=status.HTTP_201_CREATED,
        summary="Register restaurant",
    )
    def restaurants_create(
        payload: RestaurantCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        creator: deps.RestaurantCreator = Depends(deps.get_restaurant_creator),
    ) -> Restaurant:
        return creator(payload.model_dump())

    @application.post(
        "/users",
        response_model=User,
        status_code=status.HTTP_201_CREATED,
        summary="Register user",
    )
    def users_create(
        payload: UserCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        creator: deps.UserCreator = Depends(deps.get_user_creator),
    ) -> User:
        return creator(payload.model_dump())

    @application.put(
        "/admin/restaurants/{restaurant_id}/verification",
        response_model=Restaurant,
        summary="Verify or unverify a restaurant",
    )
    def restaurants_verify(
        restaurant_id: str,
        payload: VerificationRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        admin_id: str = Depends(deps.require_admin),
        setter: deps.VerificationSetter = Depends(deps.get_verification_setter),
        sink: NotificationSink = Depends(deps.get_notification_sink),
    ) -> Restaurant:
        restaurant = setter(restaurant_id, payload.is_verified)
        kind = (
            NotificationKind.RESTAURANT_VERIFIED
            if restaurant.is_verified
            else NotificationKind.RESTAURANT_UNVERIFIED
        )
        try:
            sink.notify(
                RecipientKind.RESTAURANT,
                restaurant.id,
                kind,
                {"restaurant_name": restaurant.restaurant_name},
            )
        except Exception:
            logger.exception("Verification notification failed for restaurant_id=%s", restaurant.id)
        logger.info(
            "Restaurant %s verification set to %s by admin=%s",
            restaurant.id,
            restaurant.is_verified,
            admin_id,
        )
        return restaurant

    @application.get("/restaurants", response_model=RestaurantPage, summary="List restaurants")
    def restaurants_list(
        page: int = Query(default=1, ge=1),
        limit: Optional[int] = Query(default=None, ge=1, le=100),
        search: Optional[str] = Query(default=None, max_length=255),
        settings: Settings = Depends(get_settings),
    ) -> RestaurantPage:
        return account_store.list_restaurants(
            page=page,
            limit=limit or settings.default_page_size,
            search=search,
        )

    @application.get(
        "/restaurants/me",
        response_model=RestaurantDetail,
        summary="Get the calling restaurant's profile and listings",
    )
    def restaurants_me(
        restaurant_id: str = Depends(deps.current_restaurant_id),
    ) -> RestaurantDetail:
        detail = account_store.get_restaurant_detail(restaurant_id, available_only=False)
        if detail is None:
            raise NotFoundError("Restaurant not found")
        return detail

    @application.put(
        "/restaurants/me",
        response_model=Restaurant,
        summary="Update the calling restaurant's profile",
    )
    def restaurants_update_me(
        payload: RestaurantUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        restaurant_id: str = Depends(deps.current_restaurant_id),
    ) -> Restaurant:
        return account_store.update_restaurant_profile(restaurant_id, **_changes(payload))

    @application.get(
        "/restaurants/{restaurant_id}",
        response_model=RestaurantDetail,
        summary="Get a restaurant with its available listings",
    )
    def restaurants_get(restaurant_id: str) -> RestaurantDetail:
        detail = account_store.get_restaurant_detail(restaurant_id, available_only=True)
        if detail is None:
            raise NotFoundError("Restaurant not found")
        return detail

    @application.get("/users/me", response_model=User, summary="Get the calling user's profile")
    def users_me(user_id: str = Depends(deps.current_user_id)) -> User:
        user = account_store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    @application.put("/users/me", response_model=User, summary="Update the calling user's profile")
    def users_update_me(
        payload: UserUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.current_active_user_id),
    ) -> User:
        return account_store.update_user_profile(user_id, **_changes(payload))

    # Administration -----------------------------------------------------------

    @application.get("/admin/dashboard", response_model=DashboardStats, summary="Platform totals")
    def admin_dashboard(admin_id: str = Depends(deps.require_admin)) -> DashboardStats:
        return stats.get_dashboard_stats()

    @application.get("/admin/users", response_model=UserPage, summary="List users")
    def admin_users_list(
        page: int = Query(default=1, ge=1),
        limit: Optional[int] = Query(default=None, ge=1, le=100),
        role: Optional[Literal["USER", "ADMIN"]] = Query(default=None),
        search: Optional[str] = Query(default=None, max_length=255),
        admin_id: str = Depends(deps.require_admin),
        settings: Settings = Depends(get_settings),
    ) -> UserPage:
        return account_store.list_users(
            page=page,
            limit=limit or settings.default_page_size,
            role=role,
            search=search,
        )

    @application.get(
        "/admin/users/{user_id}",
        response_model=UserDetail,
        summary="Get a user with their requests",
    )
    def admin_users_get(user_id: str, admin_id: str = Depends(deps.require_admin)) -> UserDetail:
        detail = account_store.get_user_detail(user_id)
        if detail is None:
            raise NotFoundError("User not found")
        return detail

    @application.put(
        "/admin/users/{user_id}/status",
        response_model=User,
        summary="Activate, deactivate or verify a user",
    )
    def admin_users_status(
        user_id: str,
        payload: UserStatusUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        admin_id: str = Depends(deps.require_admin),
    ) -> User:
        user = account_store.update_user_status(user_id, **_changes(payload))
        logger.info(
            "User %s status set active=%s verified=%s by admin=%s",
            user.id,
            user.is_active,
            user.is_verified,
            admin_id,
        )
        return user

    @application.delete(
        "/admin/users/{user_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a user account",
    )
    def admin_users_delete(
        user_id: str,
        auth: None = Depends(deps.require_api_token),
        admin_id: str = Depends(deps.require_admin),
    ) -> None:
        account_store.delete_user(user_id)
        logger.info("User %s deleted by admin=%s", user_id, admin_id)

    @application.delete(
        "/admin/restaurants/{restaurant_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a restaurant and all its listings",
    )
    def admin_restaurants_delete(
        restaurant_id: str,
        auth: None = Depends(deps.require_api_token),
        admin_id: str = Depends(deps.require_admin),
    ) -> None:
        account_store.delete_restaurant(restaurant_id)
        logger.info("Restaurant %s deleted by admin=%s", restaurant_id, admin_id)

    @application.get(
        "/admin/requests",
        response_model=FoodRequestPage,
        summary="List every food request",
    )
    def admin_requests_list(
        page: int = Query(default=1, ge=1),
        limit: Optional[int] = Query(default=None, ge=1, le=100),
        request_status: Optional[RequestStatus] = Query(default=None, alias="status"),
        admin_id: str = Depends(deps.require_admin),
        settings: Settings = Depends(get_settings),
    ) -> FoodRequestPage:
        return request_store.list_all_requests(
            page=page,
            limit=limit or settings.default_page_size,
            status=request_status,
        )

    # Listings -----------------------------------------------------------------

    @application.get("/food", response_model=FoodListingPage, summary="Browse food listings")
    def listings_browse(
        page: int = Query(default=1, ge=1),
        limit: Optional[int] = Query(default=None, ge=1, le=100),
        category: Optional[str] = Query(default=None, max_length=128),
        listing_status: Optional[ListingStatus] = Query(default=None, alias="status"),
        search: Optional[str] = Query(default=None, max_length=255),
        browser: deps.ListingBrowser = Depends(deps.get_listing_browser),
        settings: Settings = Depends(get_settings),
    ) -> FoodListingPage:
        return browser(
            page=page,
            limit=limit or settings.default_page_size,
            category=category,
            status=listing_status,
            search=search,
        )

    @application.get(
        "/food/my/listings",
        response_model=list[FoodListing],
        summary="List the calling restaurant's listings",
    )
    def listings_mine(
        restaurant_id: str = Depends(deps.current_restaurant_id),
        provider: deps.RestaurantListingsProvider = Depends(deps.get_restaurant_listings_provider),
    ) -> list[FoodListing]:
        return provider(restaurant_id)

    @application.get("/food/{listing_id}", response_model=FoodListing, summary="Get food listing")
    def listings_get(
        listing_id: str,
        fetcher: deps.ListingFetcher = Depends(deps.get_listing_fetcher),
    ) -> FoodListing:
        listing = fetcher(listing_id)
        if listing is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Food listing not found")
        return listing

    @application.post(
        "/food",
        response_model=FoodListing,
        status_code=status.HTTP_201_CREATED,
        summary="Create food listing",
    )
    def listings_create(
        payload: ListingCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        restaurant_id: str = Depends(deps.current_restaurant_id),
        creator: deps.ListingCreator = Depends(deps.get_listing_creator),
    ) -> FoodListing:
        listing = creator(restaurant_id, payload.model_dump())
        logger.info("Listing %s created by restaurant=%s", listing.id, restaurant_id)
        return listing

    @application.put("/food/{listing_id}", response_model=FoodListing, summary="Edit food listing")
    def listings_update(
        listing_id: str,
        payload: ListingUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        restaurant_id: str = Depends(deps.current_restaurant_id),
        updater: deps.ListingUpdater = Depends(deps.get_listing_updater),
    ) -> FoodListing:
        update_payload = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_LISTING_FIELDS
        }
        if not update_payload:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields provided for update",
            )
        return updater(listing_id, restaurant_id, update_payload)

    @application.delete(
        "/food/{listing_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete food listing",
    )
    def listings_delete(
        listing_id: str,
        auth: None = Depends(deps.require_api_token),
        restaurant_id: str = Depends(deps.current_restaurant_id),
        deleter: deps.ListingDeleter = Depends(deps.get_listing_deleter),
    ) -> None:
        deleter(listing_id, restaurant_id)

    # Requests -----------------------------------------------------------------

    @application.post(
        "/requests",
        response_model=FoodRequest,
        status_code=status.HTTP_201_CREATED,
        summary="Request food from a listing",
    )
    def requests_create(
        payload: FoodRequestCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.current_active_user_id),
        manager: LifecycleManager = Depends(deps.get_lifecycle_manager),
    ) -> FoodRequest:
        return manager.create_request(
            user_id,
            payload.food_listing_id,
            payload.quantity,
            payload.message,
        )

    @application.get(
        "/requests/my",
        response_model=list[FoodRequestDetail],
        summary="List the calling user's requests",
    )
    def requests_mine(
        request_status: Optional[RequestStatus] = Query(default=None, alias="status"),
        user_id: str = Depends(deps.current_user_id),
        provider: deps.UserRequestsProvider = Depends(deps.get_user_requests_provider),
    ) -> list[FoodRequestDetail]:
        return provider(user_id, status=request_status)

    @application.get(
        "/requests/restaurant",
        response_model=list[FoodRequestDetail],
        summary="List requests against the calling restaurant's listings",
    )
    def requests_for_restaurant(
        request_status: Optional[RequestStatus] = Query(default=None, alias="status"),
        restaurant_id: str = Depends(deps.current_restaurant_id),
        provider: deps.RestaurantRequestsProvider = Depends(deps.get_restaurant_requests_provider),
    ) -> list[FoodRequestDetail]:
        return provider(restaurant_id, status=request_status)

    @application.put(
        "/requests/{request_id}/status",
        response_model=FoodRequest,
        summary="Approve, reject or complete a request",
    )
    def requests_update_status(
        request_id: str,
        payload: RequestStatusUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        restaurant_id: str = Depends(deps.current_restaurant_id),
        manager: LifecycleManager = Depends(deps.get_lifecycle_manager),
    ) -> FoodRequest:
        return manager.update_request_status(
            request_id,
            restaurant_id,
            RequestStatus(payload.status),
            payload.pickup_date,
        )

    @application.put(
        "/requests/{request_id}/cancel",
        response_model=FoodRequest,
        summary="Cancel a pending request",
    )
    def requests_cancel(
        request_id: str,
        auth: None = Depends(deps.require_api_token),
        user_id: str = Depends(deps.current_active_user_id),
        manager: LifecycleManager = Depends(deps.get_lifecycle_manager),
    ) -> FoodRequest:
        return manager.cancel_request(request_id, user_id)

    # Notifications ------------------------------------------------------------

    @application.get(
        "/notifications",
        response_model=list[Notification],
        summary="List notifications for the caller",
    )
    def notifications_list(
        unread_only: bool = Query(default=False),
        recipient: deps.Recipient = Depends(deps.current_recipient),
    ) -> list[Notification]:
        kind, recipient_id = recipient
        return inbox.list_notifications(kind, recipient_id, unread_only=unread_only)

    @application.get("/notifications/unread-count", summary="Count unread notifications")
    def notifications_unread_count(
        recipient: deps.Recipient = Depends(deps.current_recipient),
    ) -> dict[str, int]:
        kind, recipient_id = recipient
        return {"count": inbox.count_unread(kind, recipient_id)}

    @application.put("/notifications/read-all", summary="Mark every notification as read")
    def notifications_read_all(
        auth: None = Depends(deps.require_api_token),
        recipient: deps.Recipient = Depends(deps.current_recipient),
    ) -> dict[str, int]:
        kind, recipient_id = recipient
        return {"updated": inbox.mark_all_read(kind, recipient_id)}

    @application.put(
        "/notifications/{notification_id}/read",
        response_model=Notification,
        summary="Mark a notification as read",
    )
    def notifications_read(
        notification_id: str,
        auth: None = Depends(deps.require_api_token),
        recipient: deps.Recipient = Depends(deps.current_recipient),
    ) -> Notification:
        kind, recipient_id = recipient
        return inbox.mark_read(kind, recipient_id, notification_id)

    @application.delete(
        "/notifications/{notification_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete a notification",
    )
    def notifications_delete(
        notification_id: str,
        auth: None = Depends(deps.require_api_token),
        recipient: deps.Recipient = Depends(deps.current_recipient),
    ) -> None:
        kind, recipient_id = recipient
        inbox.delete_notification(kind, recipient_id, notification_id)

    @application.delete("/notifications", summary="Clear all notifications")
    def notifications_clear(
        auth: None = Depends(deps.require_api_token),
        recipient: deps.Recipient = Depends(deps.current_recipient),
    ) -> dict[str, int]:
        kind, recipient_id = recipient
        return {"deleted": inbox.clear_notifications(kind, recipient_id)}

    return application


class RestaurantCreateRequest(BaseModel):
    restaurant_name: str = Field(min_length=2, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    address: Optional[str] = Field(default=None, max_length=1000)
    phone: Optional[str] = Field(default=None, max_length=64)


class UserCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)
    address: Optional[str] = Field(default=None, max_length=1000)
    role: Literal["USER", "ADMIN"] = "USER"


class RestaurantUpdateRequest(BaseModel):
    restaurant_name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    address: Optional[str] = Field(default=None, max_length=1000)
    phone: Optional[str] = Field(default=None, max_length=64)


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)
    address: Optional[str] = Field(default=None, max_length=1000)


class VerificationRequest(BaseModel):
    is_verified: bool


class UserStatusUpdateRequest(BaseModel):
    is_active: Optional[bool] = None
    is_verified: Optional[bool] = None


class ListingCreateRequest(BaseModel):
    title: str = Field(min_length=3, max_length=255)
    description: str = Field(min_length=10)
    quantity: int = Field(gt=0)
    unit: str = Field(min_length=1, max_length=64)
    expiry_date: datetime
    pickup_time: str = Field(min_length=1, max_length=128)
    category: Optional[str] = Field(default=None, max_length=128)


class ListingUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=64)
    expiry_date: Optional[datetime] = None
    pickup_time: Optional[str] = Field(default=None, min_length=1, max_length=128)
    category: Optional[str] = Field(default=None, max_length=128)


class FoodRequestCreateRequest(BaseModel):
    food_listing_id: str = Field(min_length=1, max_length=36)
    quantity: int = Field(gt=0)
    message: Optional[str] = Field(default=None, max_length=1000)


class RequestStatusUpdateRequest(BaseModel):
    status: Literal["APPROVED", "REJECTED", "COMPLETED"]
    pickup_date: Optional[datetime] = None


app = create_app()

__all__ = ["app", "create_app"]
