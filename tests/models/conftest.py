import pytest

from neume_editor.models import PitchInfo, Zone


@pytest.fixture
def valid_zone():
    return Zone(ulx=10, uly=20, lrx=40, lry=60)


@pytest.fixture
def valid_pitch():
    return PitchInfo(pname="a", oct=3)
