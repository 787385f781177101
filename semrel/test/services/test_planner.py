"""Version calculation: release history, next version and consistency checks."""

from __future__ import annotations

from semrel.core.result import Err, Ok
from semrel.services.release.channels import Channel
from semrel.services.release.commits import CommitDelta
from semrel.services.release.planner import (
    ReleaseHistory,
    check_consistency,
    compute_history,
    latest_release_tag,
    next_version,
)
from semrel.services.release.semver import DEFAULT_TAG_FORMAT, Version

STABLE = Channel(branch="master")
DEV = Channel(branch="dev", qualifier="dev")

FIX = CommitDelta(fixes=1)
FEAT = CommitDelta(features=1)
BREAK = CommitDelta(breaking=True)


def _history(*tags: str) -> ReleaseHistory:
    return compute_history(tags, DEFAULT_TAG_FORMAT)


class TestComputeHistory:
    def test_ignores_foreign_tags(self) -> None:
        history = _history("v1.0.0", "nightly", "v1.2.3", "v1.1.0", "1.9.0")
        assert history.latest_stable == Version(1, 2, 3)
        assert "nightly" in history.existing_tags

    def test_tracks_prerelease_sequences_per_core(self) -> None:
        history = _history("v1.3.0-dev.1", "v1.3.0-dev.3", "v1.3.0-dev.2", "v1.4.0-dev.1", "v1.3.0-beta.7")
        assert history.prerelease_max["dev"] == {Version(1, 3, 0): 3, Version(1, 4, 0): 1}
        assert history.latest_prerelease("dev") == Version(1, 4, 0, "dev", 1)
        assert history.latest_prerelease("beta") == Version(1, 3, 0, "beta", 7)
        assert history.latest_prerelease("rc") is None

    def test_latest_on_channel(self) -> None:
        history = _history("v1.2.3", "v1.3.0-dev.1")
        assert history.latest_on(STABLE) == Version(1, 2, 3)
        assert history.latest_on(DEV) == Version(1, 3, 0, "dev", 1)


def test_latest_release_tag_uses_precedence() -> None:
    tags = ["v1.2.3", "v1.3.0-dev.2", "v1.3.0-dev.10", "other"]
    assert latest_release_tag(tags, DEFAULT_TAG_FORMAT) == ("v1.3.0-dev.10", Version(1, 3, 0, "dev", 10))
    assert latest_release_tag(["x"], DEFAULT_TAG_FORMAT) is None


def test_latest_release_tag_per_channel() -> None:
    tags = ["v1.2.3", "v1.3.0-dev.1", "v1.3.0-beta.4"]
    assert latest_release_tag(tags, DEFAULT_TAG_FORMAT, channel=STABLE) == ("v1.2.3", Version(1, 2, 3))
    assert latest_release_tag(tags, DEFAULT_TAG_FORMAT, channel=DEV) == (
        "v1.3.0-dev.1",
        Version(1, 3, 0, "dev", 1),
    )
    # A stable release outranks prereleases of the same core.
    after = [*tags, "v1.3.0"]
    assert latest_release_tag(after, DEFAULT_TAG_FORMAT, channel=DEV) == ("v1.3.0", Version(1, 3, 0))


class TestNextVersion:
    def test_stable_patch(self) -> None:
        assert next_version(delta=FIX, channel=STABLE, history=_history("v1.2.3")) == Version(1, 2, 4)

    def test_prerelease_first_on_core(self) -> None:
        result = next_version(delta=FEAT, channel=DEV, history=_history("v1.2.3"))
        assert result == Version(1, 3, 0, "dev", 1)

    def test_fix_continues_existing_prerelease_core(self) -> None:
        history = _history("v1.2.3", "v1.3.0-dev.1")
        assert next_version(delta=FIX, channel=DEV, history=history) == Version(1, 3, 0, "dev", 2)

    def test_same_bump_increments_sequence(self) -> None:
        history = _history("v1.2.3", "v1.3.0-dev.1", "v1.3.0-dev.2")
        assert next_version(delta=FEAT, channel=DEV, history=history) == Version(1, 3, 0, "dev", 3)

    def test_higher_bump_starts_new_core(self) -> None:
        history = _history("v1.2.3", "v1.3.0-dev.4")
        assert next_version(delta=BREAK, channel=DEV, history=history) == Version(2, 0, 0, "dev", 1)

    def test_prerelease_after_stable_promotion(self) -> None:
        history = _history("v1.2.3", "v1.3.0-dev.2", "v1.3.0")
        assert next_version(delta=FIX, channel=DEV, history=history) == Version(1, 3, 1, "dev", 1)

    def test_no_history(self) -> None:
        assert next_version(delta=FIX, channel=STABLE, history=_history()) == Version(0, 0, 1)
        assert next_version(delta=FEAT, channel=DEV, history=_history()) == Version(0, 1, 0, "dev", 1)

    def test_no_bump(self) -> None:
        assert next_version(delta=CommitDelta(other=3), channel=STABLE, history=_history("v1.0.0")) is None

    def test_stable_ignores_prereleases(self) -> None:
        history = _history("v1.2.3", "v2.0.0-dev.1")
        assert next_version(delta=FIX, channel=STABLE, history=history) == Version(1, 2, 4)

    def test_strictly_increasing_on_channel(self) -> None:
        tags = ["v1.0.0"]
        previous: Version | None = None
        for delta in (FIX, FEAT, FIX, BREAK, FIX, FEAT):
            version = next_version(delta=delta, channel=DEV, history=_history(*tags))
            assert version is not None
            if previous is not None:
                assert version.precedence() > previous.precedence()
            tags.append(DEFAULT_TAG_FORMAT.format(version))
            previous = version


class TestCheckConsistency:
    def test_accepts_next_version(self) -> None:
        history = _history("v1.2.3")
        result = check_consistency(
            version=Version(1, 2, 4), channel=STABLE, history=history, tag_format=DEFAULT_TAG_FORMAT
        )
        assert result == Ok(None)

    def test_rejects_existing_tag(self) -> None:
        history = _history("v1.2.3", "v1.2.4-dev.1")
        result = check_consistency(
            version=Version(1, 2, 4, "dev", 1),
            channel=DEV,
            history=history,
            tag_format=DEFAULT_TAG_FORMAT,
        )
        assert isinstance(result, Err)
        assert result.error.kind == "version_inconsistent"
        assert "already exists" in result.error.message

    def test_rejects_non_increasing(self) -> None:
        history = _history("v1.2.3")
        result = check_consistency(
            version=Version(1, 2, 0), channel=STABLE, history=history, tag_format=DEFAULT_TAG_FORMAT
        )
        assert isinstance(result, Err)
        assert "does not exceed" in result.error.message

    def test_rejects_channel_mismatch(self) -> None:
        result = check_consistency(
            version=Version(1, 3, 0), channel=DEV, history=_history(), tag_format=DEFAULT_TAG_FORMAT
        )
        assert isinstance(result, Err)
        assert result.error.kind == "version_inconsistent"

    def test_rejects_prerelease_not_above_stable(self) -> None:
        result = check_consistency(
            version=Version(1, 2, 3, "dev", 1),
            channel=DEV,
            history=_history("v1.2.3"),
            tag_format=DEFAULT_TAG_FORMAT,
        )
        assert isinstance(result, Err)
        assert "must exceed latest stable" in result.error.message
