import pytest

from builder_pipeline.core import duplicates
from builder_pipeline.models import BuilderRecord, PhotoAsset


def _record(name="Sprinter Crafters", photos=0, **fields):
    return BuilderRecord(
        name=name,
        website="https://sprintercrafters.com/",
        state="AZ",
        photos=[PhotoAsset(url=f"https://cdn.test/{i}.jpg") for i in range(photos)],
        **fields,
    )


class Lookup:
    def __init__(self, existing=None):
        self.existing = existing
        self.names = []

    def __call__(self, normalized_name):
        self.names.append(normalized_name)
        return self.existing


def test_normalize_name():
    assert duplicates.normalize_name("  Sprinter   Crafters ") == "sprinter crafters"
    assert duplicates.normalize_name(None) == ""


def test_new_builder_proceeds():
    lookup = Lookup()
    decision = duplicates.DuplicateResolver(lookup).resolve(_record(name=" Sprinter  Crafters"))

    assert decision.proceed is True
    assert decision.reason == "new builder"
    assert lookup.names == ["sprinter crafters"]


def test_auto_policy_overwrites_when_new_is_at_least_as_complete():
    existing = _record(phone="(602) 814-2290", photos=2)
    new = _record(phone="(602) 814-2290", email="hi@sprintercrafters.com", photos=0)

    decision = duplicates.DuplicateResolver(Lookup(existing)).resolve(new)

    assert decision.proceed is True
    assert decision.reason == "new data at least as complete"
    assert decision.existing is existing
    assert decision.match.new_completeness == 3


def test_auto_policy_photo_count_breaks_ties():
    existing = _record(phone="(602) 814-2290", photos=4)
    fewer = _record(phone="(602) 814-2290", photos=1)
    same = _record(phone="(602) 814-2290", photos=4)

    resolver = duplicates.DuplicateResolver(Lookup(existing))

    assert resolver.resolve(fewer).proceed is False
    assert resolver.resolve(fewer).reason == "existing record is more complete"
    assert resolver.resolve(same).proceed is True


def test_auto_policy_keeps_richer_existing_record(caplog):
    existing = _record(phone="(602) 814-2290", email="hi@sprintercrafters.com", city="Phoenix")
    new = _record(photos=6)

    with caplog.at_level("INFO"):
        decision = duplicates.DuplicateResolver(Lookup(existing)).resolve(new)

    assert decision.proceed is False
    assert "keep existing" in caplog.text


@pytest.mark.parametrize("answer,proceed,reason", [(True, True, "overwrite confirmed"), (False, False, "overwrite declined by operator")])
def test_confirm_policy_asks_operator(answer, proceed, reason):
    asked = []

    def confirm(new, existing, match):
        asked.append((new.name, existing.name, match.describe()))
        return answer

    existing = _record(phone="(602) 814-2290")
    resolver = duplicates.DuplicateResolver(Lookup(existing), policy="confirm", confirm=confirm)

    decision = resolver.resolve(_record(photos=3))

    assert decision.proceed is proceed
    assert decision.reason == reason
    assert asked == [("Sprinter Crafters", "Sprinter Crafters", "contact 1 vs 2, photos 3 vs 0")]


def test_prompt_overwrite_reads_console(monkeypatch, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt: " Yes ")
    existing = _record(phone="(602) 814-2290")
    new = _record()

    assert duplicates.prompt_overwrite(new, existing, duplicates.ExistingRecordMatch.compare(new, existing)) is True
    assert "already exists" in capsys.readouterr().out


def test_unknown_policy_rejected():
    with pytest.raises(ValueError):
        duplicates.DuplicateResolver(Lookup(), policy="always")


def test_overwrite_keeps_stored_name():
    existing = _record()
    new = _record(name="SPRINTER  CRAFTERS", phone="(602) 555-0143")

    decision = duplicates.DuplicateResolver(Lookup(existing)).resolve(new)

    assert decision.proceed is True
    assert decision.record.name == "Sprinter Crafters"
    assert decision.record.phone == "(602) 555-0143"
    assert new.name == "SPRINTER  CRAFTERS"


def test_new_builder_is_written_as_extracted():
    new = _record()
    decision = duplicates.DuplicateResolver(Lookup()).resolve(new)
    assert decision.record is new
