import pytest

from pinatree.core.resolver import LocationResolver
from pinatree.errors import InvalidCoordinatesError
from pinatree.schemas.location import LocationSource


def test_extraction_applies_when_nothing_chosen():
    resolver = LocationResolver()
    generation = resolver.begin_file()

    assert resolver.apply_extraction(generation, (51.5, -0.125))
    assert resolver.location.latitude == 51.5
    assert resolver.location.source == LocationSource.EXTRACTED


def test_manual_choice_beats_late_extraction():
    resolver = LocationResolver()
    generation = resolver.begin_file()
    resolver.set_manual(40.7128, -74.006, LocationSource.MAP_CLICK)

    assert not resolver.apply_extraction(generation, (51.5, -0.125))
    assert resolver.location.source == LocationSource.MAP_CLICK
    assert resolver.location.latitude == 40.7128


def test_manual_replaces_extracted():
    resolver = LocationResolver()
    resolver.apply_extraction(resolver.begin_file(), (51.5, -0.125))
    resolver.set_manual(10, 20, LocationSource.TYPED)

    assert resolver.location.source == LocationSource.TYPED
    assert (resolver.location.latitude, resolver.location.longitude) == (10, 20)


def test_stale_extraction_is_discarded():
    resolver = LocationResolver()
    first = resolver.begin_file()
    second = resolver.begin_file()

    assert not resolver.apply_extraction(first, (1.0, 1.0))
    assert resolver.location is None
    assert resolver.apply_extraction(second, (2.0, 2.0))
    assert resolver.location.latitude == 2.0


def test_new_file_extraction_replaces_previous_extraction():
    resolver = LocationResolver()
    resolver.apply_extraction(resolver.begin_file(), (1.0, 1.0))
    resolver.apply_extraction(resolver.begin_file(), (2.0, 2.0))
    assert resolver.location.latitude == 2.0


def test_drop_file_clears_only_extracted_location():
    resolver = LocationResolver()
    resolver.apply_extraction(resolver.begin_file(), (1.0, 1.0))
    assert resolver.drop_file()
    assert resolver.location is None

    resolver.begin_file()
    resolver.set_manual(3, 4, LocationSource.DEVICE)
    assert not resolver.drop_file()
    assert resolver.location.source == LocationSource.DEVICE


def test_drop_file_invalidates_pending_extraction():
    resolver = LocationResolver()
    generation = resolver.begin_file()
    resolver.drop_file()
    assert not resolver.apply_extraction(generation, (1.0, 1.0))
    assert resolver.location is None


def test_invalid_manual_coordinates_keep_previous_location():
    resolver = LocationResolver()
    resolver.set_manual(1, 2, LocationSource.MAP_CLICK)

    with pytest.raises(InvalidCoordinatesError, match="Latitude must be between -90 and 90 degrees"):
        resolver.set_manual(120, 2, LocationSource.TYPED)
    assert resolver.location.latitude == 1


def test_extracted_is_not_a_manual_source():
    with pytest.raises(ValueError):
        LocationResolver().set_manual(1, 2, LocationSource.EXTRACTED)


def test_address_only_attaches_to_current_revision():
    resolver = LocationResolver()
    resolver.set_manual(1, 2, LocationSource.MAP_CLICK)
    old_revision = resolver.revision
    resolver.set_manual(3, 4, LocationSource.MAP_CLICK)

    assert not resolver.apply_address(old_revision, "Old Street")
    assert resolver.location.address is None
    assert resolver.apply_address(resolver.revision, "New Street")
    assert resolver.location.display_address == "New Street"


def test_display_address_falls_back_to_coordinates():
    resolver = LocationResolver()
    resolver.set_manual(51.5074, -0.1278, LocationSource.TYPED)
    assert resolver.location.display_address == "51.5074°N, 0.1278°W"


def test_coordinates_rounded_to_six_decimals():
    resolver = LocationResolver()
    resolver.set_manual(51.123456789, -0.987654321, LocationSource.MAP_CLICK)
    assert resolver.location.latitude == 51.123457
    assert resolver.location.longitude == -0.987654
