"""URL routing for flights."""

from django.urls import path  # type: ignore

from .views import FlightBookView, FlightSearchView, FlightVerifyView, RoundTripSearchView

urlpatterns = [
    path("search/", FlightSearchView.as_view(), name="flight-search"),
    path("roundtrip/", RoundTripSearchView.as_view(), name="flight-roundtrip"),
    path("book/", FlightBookView.as_view(), name="flight-book"),
    path("verify/", FlightVerifyView.as_view(), name="flight-verify"),
]
