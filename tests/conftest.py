import pytest

from neume_editor.elements import Clef
from neume_editor.events import ChangeNotifier, CommandLog
from neume_editor.models import HeadShape
from neume_editor.neume import Neume
from neume_editor.page import Page
from neume_editor.staff import Staff

# four-line staff, 53 px between lines
STAFF_BB = [190, 302, 1450, 461]
CLEF_BB = [190, 278, 208, 331]


@pytest.fixture
def staff():
    return Staff(STAFF_BB)


@pytest.fixture
def clef():
    c = Clef("c")
    c.set_id("c1")
    c.set_bounding_box(CLEF_BB)
    return c


@pytest.fixture
def staff_with_clef(staff, clef):
    staff.add_clef(clef)
    return staff


@pytest.fixture
def neume_factory():
    # build an unmounted neume from (pname, oct) pairs
    def _make(bb, *pitches, head_shape=HeadShape.PUNCTUM, modifier=None, nid=None):
        neume = Neume(modifier=modifier)
        neume.set_id(nid)
        neume.set_bounding_box(bb)
        for pname, oct in pitches:
            neume.add_component(head_shape, pname, oct)
        return neume

    return _make


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def recorded(notifier):
    # change descriptors received by a subscribed renderer
    received = []
    notifier.subscribe(received.append)
    return received


@pytest.fixture
def page():
    # two staves, each starting with a c clef on the top line
    page = Page()
    for sid, cid, top in (("s1", "c1", 302), ("s2", "c2", 602)):
        staff = Staff([190, top, 1450, top + 159])
        staff.set_id(sid)
        clef = Clef("c")
        clef.set_id(cid)
        clef.set_bounding_box([190, top - 24, 208, top + 29])
        staff.add_clef(clef)
        page.add_staff(staff)
    return page


@pytest.fixture
def command_log():
    return CommandLog()
