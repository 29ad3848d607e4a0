import pytest
from tierstack.UTILS.string_interpolation import EnvironmentInterpolator, InterpolationError

@pytest.mark.parametrize("template, expected", [
    ("${SET}", "value"),
    ("$SET/path", "value/path"),
    ("${EMPTY:-fallback}", "fallback"),
    ("${EMPTY-fallback}", ""),
    ("${UNSET-fallback}", "fallback"),
    ("${SET:+alt}", "alt"),
    ("${EMPTY:+alt}", ""),
    ("${EMPTY+alt}", "alt"),
    ("$${SET}", "${SET}"),
    ("cost: 5$", "cost: 5$"),
])
def test_interpolate(template, expected):
    interpolator = EnvironmentInterpolator({"SET": "value", "EMPTY": ""})
    assert interpolator.interpolate(template) == expected

def test_missing_variables_are_collected_once():
    interpolator = EnvironmentInterpolator({})
    assert interpolator.interpolate("${A} $A ${B}") == "  "
    assert interpolator.missing == ["A", "B"]

def test_required_variables():
    interpolator = EnvironmentInterpolator({"EMPTY": ""})
    with pytest.raises(InterpolationError, match="set the password"):
        interpolator.interpolate("${PASSWORD:?set the password}")
    with pytest.raises(InterpolationError):
        interpolator.interpolate("${EMPTY:?}")
    assert interpolator.interpolate("${EMPTY?}") == ""
