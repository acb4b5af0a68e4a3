"""
Tests for the host-facing booking views.
"""
import uuid

from luggage_api import models
from luggage_api.services import hosts as host_service

from conftest import get_auth_header, make_booking, make_location


class TestHostBookings:
    """Tests for listing bookings across a host's locations."""

    def test_lists_bookings_at_all_owned_locations(
        self, client, db_session, host_token, host_user, other_host, regular_user, other_user
    ):
        first = make_location(db_session, host_user)
        second = make_location(db_session, host_user, name="Second Spot")
        foreign = make_location(db_session, other_host, name="Someone Else's Spot")
        make_booking(db_session, regular_user, first, hours_from_now=24)
        make_booking(db_session, other_user, second, hours_from_now=48)
        make_booking(db_session, regular_user, foreign, hours_from_now=72)

        response = client.get("/host/bookings", headers=get_auth_header(host_token))
        assert response.status_code == 200
        names = [item["location"]["name"] for item in response.json()]
        assert names == ["Central Station Lockers", "Second Spot"]

    def test_regular_user_is_forbidden(self, client, regular_token):
        response = client.get("/host/bookings", headers=get_auth_header(regular_token))
        assert response.status_code == 403

    def test_requires_auth(self, client):
        assert client.get("/host/bookings").status_code == 401


class TestLocationBookings:
    """Tests for bookings at one location."""

    def test_own_location(self, client, host_token, sample_location, sample_booking):
        response = client.get(f"/host/locations/{sample_location.id}/bookings", headers=get_auth_header(host_token))
        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [str(sample_booking.id)]

    def test_other_hosts_location(self, client, other_host_token, sample_location, sample_booking):
        response = client.get(
            f"/host/locations/{sample_location.id}/bookings", headers=get_auth_header(other_host_token)
        )
        assert response.status_code == 403
        assert response.json()["message"] == "This location does not belong to you"

    def test_location_without_bookings_is_empty(self, db_session, sample_location, other_host):
        assert host_service.list_location_bookings(db_session, sample_location.id, other_host.id) == []

    def test_unknown_location_is_empty(self, client, host_token):
        response = client.get(f"/host/locations/{uuid.uuid4()}/bookings", headers=get_auth_header(host_token))
        assert response.status_code == 200
        assert response.json() == []


class TestDashboard:
    """Tests for per-status booking counts."""

    def test_counts_by_status(self, client, db_session, host_token, host_user, regular_user, sample_location):
        statuses = [
            models.BookingStatus.PENDING,
            models.BookingStatus.PENDING,
            models.BookingStatus.CONFIRMED,
            models.BookingStatus.CANCELLED,
            models.BookingStatus.COMPLETED,
        ]
        for offset, status in enumerate(statuses):
            make_booking(db_session, regular_user, sample_location, hours_from_now=24 + offset * 3, status=status)

        response = client.get("/host/dashboard", headers=get_auth_header(host_token))
        assert response.status_code == 200
        assert response.json() == {
            "total_bookings": 5,
            "pending_bookings": 2,
            "confirmed_bookings": 1,
            "cancelled_bookings": 1,
            "completed_bookings": 1,
        }

    def test_empty_dashboard(self, db_session, host_user):
        summary = host_service.dashboard(db_session, host_user.id)
        assert summary.total_bookings == 0
        assert summary.pending_bookings == 0

    def test_other_hosts_bookings_not_counted(self, db_session, other_host, regular_user, sample_booking):
        assert host_service.dashboard(db_session, other_host.id).total_bookings == 0
