"""Tests for the cropsat exception hierarchy."""

from __future__ import annotations

import pytest

from cropsat.exceptions import ConfigurationError, CropSatError, ProviderError

ALL_EXCEPTION_CLASSES = [CropSatError, ConfigurationError, ProviderError]


@pytest.mark.unit
class TestExceptionInheritance:
    """Verify the exception inheritance chain."""

    def test_base_inherits_from_exception(self) -> None:
        assert issubclass(CropSatError, Exception)

    @pytest.mark.parametrize(
        "exc_cls",
        [ConfigurationError, ProviderError],
        ids=lambda c: c.__name__,
    )
    def test_subclass_inherits_from_base(self, exc_cls: type[CropSatError]) -> None:
        assert issubclass(exc_cls, CropSatError)


@pytest.mark.unit
class TestThreePartMessage:
    """Verify the three-part message pattern (what, cause, fix)."""

    @pytest.mark.parametrize("exc_cls", ALL_EXCEPTION_CLASSES, ids=lambda c: c.__name__)
    def test_full_message(self, exc_cls: type[CropSatError]) -> None:
        exc = exc_cls(what="Operation failed", cause="Bad input", fix="Check your data")
        assert str(exc) == "Operation failed\nCause: Bad input\nFix: Check your data"

    @pytest.mark.parametrize("exc_cls", ALL_EXCEPTION_CLASSES, ids=lambda c: c.__name__)
    def test_what_only_message(self, exc_cls: type[CropSatError]) -> None:
        assert str(exc_cls(what="Something broke")) == "Something broke"

    def test_message_omits_empty_cause(self) -> None:
        msg = str(CropSatError(what="Failed", fix="Retry"))
        assert "Cause:" not in msg
        assert "Fix: Retry" in msg

    def test_attributes_preserved(self) -> None:
        exc = ProviderError(what="w", cause="c", fix="f")
        assert (exc.what, exc.cause, exc.fix) == ("w", "c", "f")

    def test_catchable_as_base(self) -> None:
        with pytest.raises(CropSatError):
            raise ConfigurationError(what="missing credentials")
