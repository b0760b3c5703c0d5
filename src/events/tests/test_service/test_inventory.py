import pytest

from events.exceptions import EventFullError
from events.models import Event, MerchandiseVariant
from events.service import inventory

pytestmark = pytest.mark.django_db


class TestSeats:
    def test_reserve_seat_without_limit(self, event: Event) -> None:
        inventory.reserve_seat(event)
        inventory.reserve_seat(event)

        assert event.current_registrations == 2

    def test_reserve_seat_up_to_the_limit(self, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(registration_limit=1)
        event.refresh_from_db()

        inventory.reserve_seat(event)
        with pytest.raises(EventFullError):
            inventory.reserve_seat(event)

        event.refresh_from_db()
        assert event.current_registrations == 1

    def test_release_seat(self, event: Event) -> None:
        inventory.reserve_seat(event)
        inventory.release_seat(event)

        assert event.current_registrations == 0

    def test_release_seat_never_goes_below_zero(self, event: Event) -> None:
        inventory.release_seat(event)

        assert event.current_registrations == 0


class TestStock:
    def test_deduct_stock(self, merch_event: Event, variant: MerchandiseVariant) -> None:
        assert inventory.deduct_stock(merch_event, variant.id, 2) is True

        variant.refresh_from_db()
        assert variant.stock == 0
        assert merch_event.total_stock == 0

    def test_deduct_stock_refuses_to_oversell(self, merch_event: Event, variant: MerchandiseVariant) -> None:
        assert inventory.deduct_stock(merch_event, variant.id, 3) is False

        variant.refresh_from_db()
        assert variant.stock == 2
        assert merch_event.total_stock == 2

    def test_restore_stock(self, merch_event: Event, variant: MerchandiseVariant) -> None:
        inventory.deduct_stock(merch_event, variant.id, 1)
        inventory.restore_stock(merch_event, variant.id, 1)

        variant.refresh_from_db()
        assert variant.stock == 2
        assert merch_event.total_stock == 2

    def test_total_stock_sums_all_variants(self, merch_event: Event, variant: MerchandiseVariant) -> None:
        MerchandiseVariant.objects.create(event=merch_event, name="White L", size="L", stock=5)
        merch_event.refresh_total_stock()

        assert merch_event.total_stock == 7
