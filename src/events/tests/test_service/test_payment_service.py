import typing as t
from decimal import Decimal

import pytest

from accounts.models import FelicityUser
from events.exceptions import (
    EventFullError,
    InputValidationError,
    InvalidTransitionError,
    OversoldError,
    PaymentAlreadyCompletedError,
    RegistrationNotFoundError,
)
from events.models import Event, MerchandiseVariant, Registration
from events.schema import PaymentProofSchema, PaymentReviewSchema, RegistrationIntentSchema
from events.service import payment_service, registration_service
from events.service.registration_service import RegistrationService

pytestmark = pytest.mark.django_db

PROOF = PaymentProofSchema(image_url="https://pay.example.com/receipt.png")


class TestUploadPaymentProof:
    def test_upload(self, pending_order: Registration) -> None:
        registration = payment_service.upload_payment_proof(
            pending_order, PaymentProofSchema(image_url="https://pay.example.com/r.png", note="UPI ref 42")
        )

        registration.refresh_from_db()
        assert registration.status == Registration.Status.PENDING
        assert registration.payment_status == Registration.PaymentStatus.AWAITING_APPROVAL
        assert registration.approval_status == Registration.ApprovalStatus.PENDING
        assert registration.payment_proof_url == "https://pay.example.com/r.png"
        assert registration.payment_proof_note == "UPI ref 42"
        assert registration.payment_proof_uploaded_at is not None

    def test_upload_twice(self, awaiting_order: Registration) -> None:
        with pytest.raises(InvalidTransitionError):
            payment_service.upload_payment_proof(awaiting_order, PROOF)

    def test_upload_for_normal_event(self, confirmed_registration: Registration) -> None:
        with pytest.raises(InvalidTransitionError, match="merchandise"):
            payment_service.upload_payment_proof(confirmed_registration, PROOF)

    def test_upload_for_paid_order(self, pending_order: Registration) -> None:
        Registration.objects.filter(pk=pending_order.pk).update(payment_status=Registration.PaymentStatus.COMPLETED)

        with pytest.raises(PaymentAlreadyCompletedError):
            payment_service.upload_payment_proof(pending_order, PROOF)


class TestApprovePayment:
    def test_approve(
        self, merch_event: Event, variant: MerchandiseVariant, awaiting_order: Registration, organizer: FelicityUser
    ) -> None:
        registration = payment_service.approve_payment(merch_event, str(awaiting_order.id), organizer)

        assert registration.status == Registration.Status.CONFIRMED
        assert registration.payment_status == Registration.PaymentStatus.COMPLETED
        assert registration.approval_status == Registration.ApprovalStatus.APPROVED
        assert registration.reviewed_by == organizer
        assert registration.reviewed_at is not None
        assert registration.review_comment == payment_service.DEFAULT_APPROVAL_COMMENT
        registration.refresh_from_db()
        assert registration.qr_code.startswith("data:image/png;base64,")
        variant.refresh_from_db()
        merch_event.refresh_from_db()
        assert variant.stock == 0
        assert merch_event.total_stock == 0
        assert merch_event.current_registrations == 1

    def test_approval_email_carries_the_ticket(
        self,
        merch_event: Event,
        awaiting_order: Registration,
        organizer: FelicityUser,
        django_capture_on_commit_callbacks: object,
        mailoutbox: list[object],
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):  # type: ignore[operator]
            payment_service.approve_payment(merch_event, str(awaiting_order.id), organizer, "Thanks!")

        assert len(mailoutbox) == 1
        assert mailoutbox[0].subject == f"Order Approved – {merch_event.name}"  # type: ignore[attr-defined]
        assert mailoutbox[0].attachments  # type: ignore[attr-defined]

    def test_second_approval_cannot_oversell(
        self,
        merch_event: Event,
        variant: MerchandiseVariant,
        awaiting_order: Registration,
        iiit_participant: FelicityUser,
        organizer: FelicityUser,
    ) -> None:
        second = RegistrationService(event=merch_event, participant=iiit_participant).register(
            RegistrationIntentSchema(variant_id=variant.id, quantity=1)
        )
        payment_service.upload_payment_proof(second, PROOF)

        payment_service.approve_payment(merch_event, str(awaiting_order.id), organizer)
        with pytest.raises(OversoldError):
            payment_service.approve_payment(merch_event, str(second.id), organizer)

        second.refresh_from_db()
        variant.refresh_from_db()
        merch_event.refresh_from_db()
        assert second.status == Registration.Status.PENDING
        assert second.payment_status == Registration.PaymentStatus.AWAITING_APPROVAL
        assert variant.stock == 0
        assert merch_event.current_registrations == 1

    def test_full_event_rolls_back_the_stock(
        self, merch_event: Event, variant: MerchandiseVariant, awaiting_order: Registration, organizer: FelicityUser
    ) -> None:
        Event.objects.filter(pk=merch_event.pk).update(registration_limit=1, current_registrations=1)

        with pytest.raises(EventFullError):
            payment_service.approve_payment(merch_event, str(awaiting_order.id), organizer)

        awaiting_order.refresh_from_db()
        variant.refresh_from_db()
        merch_event.refresh_from_db()
        assert awaiting_order.status == Registration.Status.PENDING
        assert awaiting_order.payment_status == Registration.PaymentStatus.AWAITING_APPROVAL
        assert awaiting_order.qr_code == ""
        assert variant.stock == 2
        assert merch_event.total_stock == 2
        assert merch_event.current_registrations == 1

    def test_approve_order_of_another_event(
        self, event: Event, awaiting_order: Registration, organizer: FelicityUser
    ) -> None:
        with pytest.raises(RegistrationNotFoundError):
            payment_service.approve_payment(event, str(awaiting_order.id), organizer)

    def test_approve_without_proof(
        self, merch_event: Event, pending_order: Registration, organizer: FelicityUser
    ) -> None:
        with pytest.raises(InvalidTransitionError):
            payment_service.approve_payment(merch_event, str(pending_order.id), organizer)

    def test_approve_without_variant(
        self, merch_event: Event, participant: FelicityUser, organizer: FelicityUser
    ) -> None:
        order = RegistrationService(event=merch_event, participant=participant).register(RegistrationIntentSchema())
        payment_service.upload_payment_proof(order, PROOF)

        registration = payment_service.approve_payment(merch_event, str(order.id), organizer)

        assert registration.status == Registration.Status.CONFIRMED
        assert registration.total_price == Decimal("100")


class TestRejectPayment:
    def test_reject(
        self, merch_event: Event, variant: MerchandiseVariant, awaiting_order: Registration, organizer: FelicityUser
    ) -> None:
        registration = payment_service.reject_payment(merch_event, str(awaiting_order.id), organizer, "Blurry")

        assert registration.status == Registration.Status.REJECTED
        assert registration.payment_status == Registration.PaymentStatus.FAILED
        assert registration.approval_status == Registration.ApprovalStatus.REJECTED
        assert registration.review_comment == "Blurry"
        variant.refresh_from_db()
        merch_event.refresh_from_db()
        assert variant.stock == 2
        assert merch_event.current_registrations == 0

    def test_rejection_email(
        self,
        merch_event: Event,
        awaiting_order: Registration,
        organizer: FelicityUser,
        django_capture_on_commit_callbacks: object,
        mailoutbox: list[object],
    ) -> None:
        with django_capture_on_commit_callbacks(execute=True):  # type: ignore[operator]
            payment_service.reject_payment(merch_event, str(awaiting_order.id), organizer)

        assert len(mailoutbox) == 1
        assert mailoutbox[0].subject == f"Order Rejected – {merch_event.name}"  # type: ignore[attr-defined]

    def test_rejected_order_cannot_be_approved(
        self, merch_event: Event, awaiting_order: Registration, organizer: FelicityUser
    ) -> None:
        payment_service.reject_payment(merch_event, str(awaiting_order.id), organizer)

        with pytest.raises(InvalidTransitionError):
            payment_service.approve_payment(merch_event, str(awaiting_order.id), organizer)


class TestReviewPayment:
    @pytest.mark.parametrize(
        "action,expected",
        [("approve", Registration.Status.CONFIRMED), ("REJECT", Registration.Status.REJECTED)],
    )
    def test_dispatches_on_action(
        self,
        merch_event: Event,
        awaiting_order: Registration,
        organizer: FelicityUser,
        action: str,
        expected: Registration.Status,
    ) -> None:
        registration = payment_service.review_payment(
            merch_event, str(awaiting_order.id), organizer, PaymentReviewSchema(action=action)
        )
        assert registration.status == expected

    def test_unknown_action(self, merch_event: Event, awaiting_order: Registration, organizer: FelicityUser) -> None:
        with pytest.raises(InputValidationError):
            payment_service.review_payment(
                merch_event, str(awaiting_order.id), organizer, PaymentReviewSchema(action="refund")
            )


def test_list_pending_payments(merch_event: Event, awaiting_order: Registration, organizer: FelicityUser) -> None:
    assert list(payment_service.list_pending_payments(merch_event)) == [awaiting_order]

    payment_service.approve_payment(merch_event, str(awaiting_order.id), organizer)

    assert not payment_service.list_pending_payments(merch_event).exists()


class TestCancelledOrder:
    @pytest.fixture
    def cancelled_order(self, awaiting_order: Registration) -> Registration:
        return registration_service.cancel_registration(awaiting_order, reason="Changed my mind")

    def test_leaves_the_review_queue(self, merch_event: Event, cancelled_order: Registration) -> None:
        assert cancelled_order.status == Registration.Status.CANCELLED
        assert cancelled_order.payment_status == Registration.PaymentStatus.FAILED
        assert cancelled_order.approval_status is None
        assert not payment_service.list_pending_payments(merch_event).exists()

    @pytest.mark.parametrize("action", [payment_service.approve_payment, payment_service.reject_payment])
    def test_cannot_be_reviewed(
        self,
        merch_event: Event,
        variant: MerchandiseVariant,
        cancelled_order: Registration,
        organizer: FelicityUser,
        action: t.Callable[..., Registration],
    ) -> None:
        with pytest.raises(InvalidTransitionError):
            action(merch_event, str(cancelled_order.id), organizer)

        cancelled_order.refresh_from_db()
        variant.refresh_from_db()
        merch_event.refresh_from_db()
        assert cancelled_order.status == Registration.Status.CANCELLED
        assert cancelled_order.reviewed_by is None
        assert cancelled_order.qr_code == ""
        assert variant.stock == 2
        assert merch_event.current_registrations == 0

    def test_status_is_checked_even_if_payment_looks_reviewable(
        self, merch_event: Event, cancelled_order: Registration, organizer: FelicityUser
    ) -> None:
        Registration.objects.filter(pk=cancelled_order.pk).update(
            payment_status=Registration.PaymentStatus.AWAITING_APPROVAL
        )

        assert not payment_service.list_pending_payments(merch_event).exists()
        with pytest.raises(InvalidTransitionError, match="cancelled"):
            payment_service.approve_payment(merch_event, str(cancelled_order.id), organizer)
