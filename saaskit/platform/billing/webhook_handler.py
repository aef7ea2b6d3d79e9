"""Subscription sync from Stripe webhook events.

Verified events are dispatched by type to a handler that reconciles the
local subscription, invoice and customer rows with Stripe's state. Every
write is a single insert-or-update keyed by the Stripe ID, so redelivered
events converge to the same rows.
"""

from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from saaskit import crud, schemas
from saaskit.core.config import settings
from saaskit.core.datetime_utils import from_unix_timestamp, utc_now_naive
from saaskit.core.exceptions import (
    MalformedPayloadError,
    StoreWriteError,
    UnresolvedUserError,
)
from saaskit.core.logging import ContextualLogger, logger
from saaskit.integrations.stripe_client import StripeClient
from saaskit.schemas.stripe_event import (
    StripeCheckoutSession,
    StripeEvent,
    StripeEventType,
    StripeInvoice,
    StripeSubscription,
)
from saaskit.schemas.subscription import SubscriptionStatus

ObjectType = TypeVar("ObjectType", bound=BaseModel)
EventHandler = Callable[[StripeEvent, ContextualLogger], Awaitable[None]]


class SubscriptionSyncHandler:
    """Reconcile local billing state from verified Stripe events."""

    def __init__(
        self,
        db: AsyncSession,
        stripe_client: StripeClient,
        ignore_stale_events: Optional[bool] = None,
    ):
        """Initialize the handler for one event delivery.

        Args:
            db: Database session
            stripe_client: Stripe client, used for lookups during resolution
            ignore_stale_events: Skip events older than the stored state.
                Defaults to ``STRIPE_WEBHOOK_IGNORE_STALE_EVENTS``.
        """
        self.db = db
        self.stripe = stripe_client
        self.ignore_stale_events = (
            settings.STRIPE_WEBHOOK_IGNORE_STALE_EVENTS
            if ignore_stale_events is None
            else ignore_stale_events
        )

        # Event handler mapping
        self.handlers: Dict[StripeEventType, EventHandler] = {
            StripeEventType.SUBSCRIPTION_CREATED: self._handle_subscription_changed,
            StripeEventType.SUBSCRIPTION_UPDATED: self._handle_subscription_changed,
            StripeEventType.SUBSCRIPTION_PAUSED: self._handle_subscription_changed,
            StripeEventType.SUBSCRIPTION_RESUMED: self._handle_subscription_changed,
            StripeEventType.SUBSCRIPTION_DELETED: self._handle_subscription_deleted,
            StripeEventType.INVOICE_PAID: self._handle_invoice_paid,
            StripeEventType.INVOICE_PAYMENT_SUCCEEDED: self._handle_payment_succeeded,
            StripeEventType.INVOICE_PAYMENT_FAILED: self._handle_payment_failed,
            StripeEventType.CHECKOUT_SESSION_COMPLETED: self._handle_checkout_completed,
        }

    async def process_event(self, event: StripeEvent) -> None:
        """Process a verified Stripe event.

        Raises:
            MalformedPayloadError: If the event object does not have the expected shape.
            UnresolvedUserError: If no local user owns the event's customer.
            StoreWriteError: If writing to the database fails.
        """
        log = logger.with_context(
            auth_method="stripe_webhook",
            event_type=event.type,
            stripe_event_id=event.id,
        )

        event_type = event.event_type
        handler = self.handlers.get(event_type) if event_type else None
        if not handler:
            log.info(f"Unhandled webhook event type: {event.type}")
            return

        log.info(f"Processing webhook event: {event.type}")
        try:
            await handler(event, log)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise StoreWriteError(
                f"Failed to store {event.type}: {e}", event_id=event.id
            ) from e

    # User resolution

    async def resolve_user(
        self,
        event: StripeEvent,
        customer_id: Optional[str],
        metadata: Dict[str, str],
        log: ContextualLogger,
    ) -> UUID:
        """Resolve the local user an event belongs to.

        Tries, in order, the ``user_id`` in the object's metadata, the stored
        customer mapping, and the ``user_id`` in the Stripe customer's metadata.
        A mapping is recorded when the user was found without one.

        Raises:
            UnresolvedUserError: If no local user matches.
        """
        user_id = await self._existing_user_id(metadata.get("user_id"))

        if not user_id and customer_id:
            mapping = await crud.customer.get_by_stripe_customer(
                self.db, stripe_customer_id=customer_id
            )
            if mapping:
                return mapping.user_id

            customer_metadata = await self.stripe.get_customer_metadata(customer_id)
            user_id = await self._existing_user_id(customer_metadata.get("user_id"))

        if not user_id:
            raise UnresolvedUserError(customer_id, event_id=event.id)

        if customer_id:
            await self._ensure_customer_mapping(user_id, customer_id, log)
        return user_id

    async def _existing_user_id(self, raw_user_id: Optional[str]) -> Optional[UUID]:
        """Parse a user ID from metadata and check that the user exists."""
        if not raw_user_id:
            return None
        try:
            user_id = UUID(raw_user_id)
        except ValueError:
            return None
        user = await crud.user.get(self.db, id=user_id)
        return user.id if user else None

    async def _ensure_customer_mapping(
        self, user_id: UUID, customer_id: str, log: ContextualLogger
    ) -> None:
        mapping = await crud.customer.get_by_stripe_customer(
            self.db, stripe_customer_id=customer_id
        )
        if mapping:
            return

        mapping = await crud.customer.create_if_absent(
            self.db,
            obj_in=schemas.CustomerCreate(user_id=user_id, stripe_customer_id=customer_id),
        )
        if mapping and mapping.stripe_customer_id != customer_id:
            log.warning(
                f"User {user_id} is already mapped to customer "
                f"{mapping.stripe_customer_id}, not {customer_id}"
            )
        else:
            log.info(f"Mapped Stripe customer {customer_id} to user {user_id}")

    # Reconciliation

    async def reconcile_subscription(
        self,
        event: StripeEvent,
        subscription: StripeSubscription,
        log: ContextualLogger,
        deleted: bool = False,
        observed_at: Optional[datetime] = None,
    ) -> bool:
        """Upsert the local row of a subscription and its items.

        Args:
            event: The event that carried (or triggered a fetch of) the subscription
            subscription: Subscription state from Stripe
            log: Contextual logger
            deleted: Whether Stripe reported the subscription as deleted
            observed_at: When the subscription state was read, if not taken from
                the event itself. Defaults to the event creation time.

        Returns:
            False if the row was left untouched because a newer event was applied
        """
        customer_id = subscription.customer_id
        user_id = await self.resolve_user(event, customer_id, subscription.metadata, log)
        log = log.with_context(user_id=str(user_id))

        item = subscription.first_item
        price_id = item.price.id if item else None

        canceled_at = from_unix_timestamp(subscription.canceled_at)
        ended_at = from_unix_timestamp(subscription.ended_at)
        if deleted:
            status = SubscriptionStatus.CANCELED
            now = utc_now_naive()
            canceled_at = canceled_at or now
            ended_at = ended_at or now
        else:
            status = SubscriptionStatus(subscription.status)

        obj_in = schemas.SubscriptionUpsert(
            user_id=user_id,
            stripe_subscription_id=subscription.id,
            stripe_customer_id=customer_id,
            status=status,
            tier=self.stripe.tier_for_price(price_id),
            stripe_price_id=price_id,
            stripe_product_id=item.price.product_id if item else None,
            quantity=(item.quantity if item and item.quantity is not None else 1),
            current_period_start=from_unix_timestamp(subscription.period_start),
            current_period_end=from_unix_timestamp(subscription.period_end),
            trial_start=from_unix_timestamp(subscription.trial_start),
            trial_end=from_unix_timestamp(subscription.trial_end),
            cancel_at=from_unix_timestamp(subscription.cancel_at),
            cancel_at_period_end=subscription.cancel_at_period_end,
            canceled_at=canceled_at,
            ended_at=ended_at,
            subscription_metadata=subscription.metadata,
            last_event_at=observed_at or from_unix_timestamp(event.created),
        )

        written = await crud.subscription.upsert(
            self.db,
            obj_in=obj_in,
            ignore_stale=self.ignore_stale_events,
            keep_first_cancellation=deleted,
        )
        if not written:
            log.info(f"Skipped stale event for subscription {subscription.id}")
            return False

        for line_item in subscription.items.data:
            await crud.subscription_item.upsert(
                self.db,
                obj_in=schemas.SubscriptionItemUpsert(
                    subscription_id=subscription.id,
                    stripe_subscription_item_id=line_item.id,
                    stripe_price_id=line_item.price.id,
                    quantity=line_item.quantity if line_item.quantity is not None else 1,
                ),
            )

        log.info(f"Subscription {subscription.id} synced with status {status.value}")
        return True

    async def record_invoice(
        self, event: StripeEvent, invoice: StripeInvoice, log: ContextualLogger
    ) -> bool:
        """Insert the invoice once; returns False for a redelivered invoice."""
        user_id = await self.resolve_user(event, invoice.customer_id, invoice.metadata, log)

        subscription_pk = None
        if invoice.subscription_id:
            local = await crud.subscription.get_by_stripe_subscription(
                self.db, stripe_subscription_id=invoice.subscription_id
            )
            subscription_pk = local.id if local else None

        inserted = await crud.invoice.create_if_absent(
            self.db,
            obj_in=schemas.InvoiceCreate(
                user_id=user_id,
                stripe_invoice_id=invoice.id,
                stripe_customer_id=invoice.customer_id,
                subscription_id=subscription_pk,
                amount_paid=invoice.amount_paid,
                amount_due=invoice.amount_due,
                currency=invoice.currency,
                status=invoice.status or "paid",
            ),
        )
        if inserted:
            log.info(f"Recorded invoice {invoice.id} ({invoice.amount_paid} {invoice.currency})")
        else:
            log.info(f"Invoice {invoice.id} already recorded")
        return inserted

    # Event handlers

    async def _handle_subscription_changed(
        self, event: StripeEvent, log: ContextualLogger
    ) -> None:
        """Handle subscription creation, updates, pauses and resumes."""
        subscription = self._parse_object(event, StripeSubscription)
        await self.reconcile_subscription(event, subscription, log)

    async def _handle_subscription_deleted(
        self, event: StripeEvent, log: ContextualLogger
    ) -> None:
        """Handle subscription deletion (immediate cancel or end of period)."""
        subscription = self._parse_object(event, StripeSubscription)
        await self.reconcile_subscription(event, subscription, log, deleted=True)

    async def _handle_invoice_paid(self, event: StripeEvent, log: ContextualLogger) -> None:
        """Handle paid invoices, including $0 ones."""
        invoice = self._parse_object(event, StripeInvoice)
        await self.record_invoice(event, invoice, log)

    async def _handle_payment_succeeded(self, event: StripeEvent, log: ContextualLogger) -> None:
        """Record the invoice and refresh its subscription from Stripe."""
        invoice = self._parse_object(event, StripeInvoice)
        await self.record_invoice(event, invoice, log)

        if invoice.subscription_id:
            subscription = await self.stripe.get_subscription(invoice.subscription_id)
            # The fetched state is current as of now, not as of the invoice event
            await self.reconcile_subscription(
                event, subscription, log, observed_at=utc_now_naive()
            )

    async def _handle_payment_failed(self, event: StripeEvent, log: ContextualLogger) -> None:
        """Mark the invoice's subscription as past due."""
        invoice = self._parse_object(event, StripeInvoice)
        if not invoice.subscription_id:
            log.info(f"Failed invoice {invoice.id} has no subscription")
            return

        updated = await crud.subscription.set_status(
            self.db,
            stripe_subscription_id=invoice.subscription_id,
            status=SubscriptionStatus.PAST_DUE,
            event_at=from_unix_timestamp(event.created),
            ignore_stale=self.ignore_stale_events,
        )
        if updated:
            log.warning(
                f"Payment failed for subscription {invoice.subscription_id} "
                f"(attempt {invoice.attempt_count})"
            )
        else:
            log.info(f"Subscription {invoice.subscription_id} left unchanged by failed invoice")

    async def _handle_checkout_completed(
        self, event: StripeEvent, log: ContextualLogger
    ) -> None:
        """Record the customer mapping of the user who checked out."""
        session = self._parse_object(event, StripeCheckoutSession)
        metadata = dict(session.metadata)
        if "user_id" not in metadata and session.client_reference_id:
            metadata["user_id"] = session.client_reference_id

        user_id = await self.resolve_user(event, session.customer_id, metadata, log)
        log.info(f"Checkout {session.id} completed for user {user_id}")

    @staticmethod
    def _parse_object(event: StripeEvent, model: Type[ObjectType]) -> ObjectType:
        try:
            return model.model_validate(event.data.object)
        except ValidationError as e:
            raise MalformedPayloadError(
                f"Malformed {event.type} object: {e}", event_id=event.id
            ) from e
