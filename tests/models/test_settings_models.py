import pytest
from pydantic import ValidationError

from neume_editor.models import EditorSettings


def test_editorsettings_default():
    s = EditorSettings()
    assert s.num_lines == 4
    assert s.page_scale == pytest.approx(1.0)
    assert s.clef_margin < s.custos_margin


@pytest.mark.parametrize("val", [1, 11])
def test_editorsettings_num_lines_invalid(val):
    with pytest.raises(ValidationError):
        EditorSettings(num_lines=val)


@pytest.mark.parametrize("val", [0.0, -1.0])
def test_editorsettings_page_scale_invalid(val):
    with pytest.raises(ValidationError):
        EditorSettings(page_scale=val)


def test_editorsettings_punct_size_invalid():
    with pytest.raises(ValidationError):
        EditorSettings(punct_width=0)


def test_editorsettings_model_copy():
    s = EditorSettings().model_copy(update={"page_scale": 0.5})
    assert s.page_scale == pytest.approx(0.5)
    assert s.num_lines == 4
