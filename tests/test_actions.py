from datetime import datetime, timedelta, timezone

import pytest

from flyteapi.actions import (
    FATAL_EVENT_NAME,
    Action,
    ActionNotFoundError,
    ActionRepository,
    ActionState,
    ActionStateError,
    Event,
    Pack,
    PackNotFoundError,
    PackRepository,
    State,
)


class FakeActionRepo:
    def __init__(self, get=None, update=None, find_new=None):
        self._get = get
        self._update = update
        self._find_new = find_new
        self.updated = []

    def get(self, action_id):
        return self._get(action_id)

    def update(self, action):
        self.updated.append(Action(**{**vars(action)}))
        if self._update is not None:
            self._update(action)

    def find_new(self, pack, name):
        return self._find_new(pack, name)


def _recent(moment):
    return abs(datetime.now(timezone.utc) - moment) < timedelta(seconds=10)


def test_complete_action_finishes_pending_action():
    calls = []

    def get(action_id):
        calls.append(action_id)
        if action_id == "existingPendingAction":
            return Action(state=State(ActionState.PENDING))
        raise ActionNotFoundError()

    repo = FakeActionRepo(get=get)
    got = Pack(id="packA").complete_action("existingPendingAction", Event(name="resultEvent"), repo)

    assert calls == ["existingPendingAction"]
    assert _recent(got.state.time)
    assert repo.updated == [got]
    assert got.state.value == ActionState.SUCCESS
    assert got.result == Event(name="resultEvent")


def test_complete_action_sets_fatal_state_for_fatal_result():
    repo = FakeActionRepo(get=lambda _id: Action(state=State(ActionState.PENDING)))
    got = Pack(id="packA").complete_action("x", Event(name=FATAL_EVENT_NAME), repo)
    assert got.state.value == ActionState.FATAL
    assert got.result.name == FATAL_EVENT_NAME


@pytest.mark.parametrize("state", [ActionState.NEW, ActionState.SUCCESS, ActionState.FATAL])
def test_complete_action_rejects_action_not_pending(state):
    repo = FakeActionRepo(get=lambda _id: Action(state=State(state)))
    with pytest.raises(ActionStateError, match="action is not in PENDING state"):
        Pack(id="packA").complete_action("id", Event(name="resultEvent"), repo)


def test_complete_action_raises_when_action_missing():
    def get(_id):
        raise ActionNotFoundError()

    with pytest.raises(ActionNotFoundError, match="action not found"):
        Pack(id="packA").complete_action("nonExisting", Event(name="r"), FakeActionRepo(get=get))


def test_complete_action_propagates_search_error():
    def get(_id):
        raise RuntimeError("something went terribly wrong Sir")

    with pytest.raises(RuntimeError, match="something went terribly wrong Sir"):
        Pack(id="packA").complete_action("error", Event(name="r"), FakeActionRepo(get=get))


def test_complete_action_propagates_update_error():
    def update(_action):
        raise RuntimeError("something went terribly wrong Sir")

    repo = FakeActionRepo(get=lambda _id: Action(state=State(ActionState.PENDING)), update=update)
    with pytest.raises(RuntimeError, match="something went terribly wrong Sir"):
        Pack(id="packA").complete_action("error", Event(name="r"), repo)


def test_complete_action_returns_none_for_other_pack():
    repo = FakeActionRepo(
        get=lambda _id: Action(pack_name="other", state=State(ActionState.PENDING))
    )
    assert Pack(id="packA", name="packA").complete_action("a", Event(name="r"), repo) is None
    assert repo.updated == []


def test_take_action_moves_new_action_with_given_name_to_pending():
    calls = []

    def find_new(pack, name):
        calls.append((pack.id, name))
        if pack.id == "packA" and name == "specificName":
            return Action(state=State(ActionState.NEW))
        raise ActionNotFoundError()

    repo = FakeActionRepo(find_new=find_new)
    got = Pack(id="packA").take_action("specificName", repo)

    assert calls == [("packA", "specificName")]
    assert _recent(got.state.time)
    assert repo.updated == [got]
    assert got.state.value == ActionState.PENDING


def test_take_action_without_name_takes_any_new_action():
    repo = FakeActionRepo(find_new=lambda p, n: Action(state=State(ActionState.NEW)))
    got = Pack(id="packA").take_action("", repo)
    assert got.state.value == ActionState.PENDING
    assert got.prev_state.value == ActionState.NEW


def test_take_action_returns_none_when_no_new_actions():
    repo = FakeActionRepo(find_new=lambda p, n: None)
    assert Pack(id="packA").take_action("noNewActions", repo) is None


def test_take_action_propagates_search_error():
    def find_new(_p, _n):
        raise RuntimeError("not juju error again")

    with pytest.raises(RuntimeError, match="not juju error again"):
        Pack(id="packA").take_action("", FakeActionRepo(find_new=find_new))


@pytest.mark.parametrize("state", [ActionState.PENDING, ActionState.SUCCESS, ActionState.FATAL])
def test_take_action_rejects_action_not_new(state):
    repo = FakeActionRepo(find_new=lambda p, n: Action(state=State(state)))
    with pytest.raises(ActionStateError, match="action is not in NEW state, cannot set to PENDING"):
        Pack(id="packA").take_action("", repo)


def test_update_last_seen_records_pack_id():
    repo = PackRepository([Pack(id="packA")])
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    Pack(id="packA").update_last_seen(repo)
    after = datetime.now(timezone.utc) + timedelta(seconds=1)
    assert set(repo.last_seen) == {"packA"}
    assert before <= repo.last_seen["packA"] <= after


def test_update_last_seen_logs_failure(caplog):
    caplog.set_level("INFO", logger="flyteapi.actions")
    Pack(id="ghost").update_last_seen(PackRepository())
    assert any("pack id ghost" in r.getMessage() for r in caplog.records)


def test_event_is_fatal():
    assert Event(name="FATAL").is_fatal() is True
    assert Event(name="ok").is_fatal() is False


@pytest.mark.parametrize(
    "state,finished",
    [
        (ActionState.NEW, False),
        (ActionState.PENDING, False),
        (ActionState.SUCCESS, True),
        (ActionState.FATAL, True),
    ],
)
def test_has_finished(state, finished):
    assert Action(state=State(state)).has_finished() is finished


def _pack_action(pack_name, action_id, name, state, when):
    return Action(id=action_id, name=name, pack_name=pack_name, state=State(state, when))


def test_repo_add_and_get_round_trip():
    repo = ActionRepository()
    want = Action(id="1", name="actionA", flow_name="flowA")
    repo.add(want)
    assert repo.get("1") == want


def test_repo_rejects_duplicate_id():
    repo = ActionRepository()
    repo.add(Action(id="1"))
    with pytest.raises(ValueError, match="duplicate"):
        repo.add(Action(id="1"))


def test_repo_get_missing_raises():
    with pytest.raises(ActionNotFoundError):
        ActionRepository().get("notMatchingActionId")


def test_repo_find_new_returns_oldest_new_action():
    now = datetime.now(timezone.utc)
    repo = ActionRepository()
    repo.add(_pack_action("packA", "1", "actionA", ActionState.NEW, now))
    repo.add(_pack_action("packA", "2", "actionA", ActionState.NEW, now - timedelta(hours=1)))
    repo.add(_pack_action("packA", "3", "actionA", ActionState.PENDING, now - timedelta(hours=2)))
    assert repo.find_new(Pack(name="packA"), "").id == "2"


def test_repo_find_new_filters_by_name_and_pack():
    now = datetime.now(timezone.utc)
    repo = ActionRepository()
    repo.add(_pack_action("packA", "1", "actionB", ActionState.NEW, now))
    assert repo.find_new(Pack(name="packA"), "actionA") is None
    assert repo.find_new(Pack(name="packWithoutActions"), "") is None
    assert repo.find_new(Pack(name="packA"), "").id == "1"


def test_repo_find_new_requires_matching_labels():
    repo = ActionRepository()
    repo.add(Action(id="1", pack_name="packA", pack_labels={"env": "prod"}))
    assert repo.find_new(Pack(name="packA", labels={"env": "dev"}), "") is None
    assert repo.find_new(Pack(name="packA", labels={"env": "prod", "x": "y"}), "").id == "1"


def test_repo_update_checks_previous_state():
    repo = ActionRepository()
    action = Action(id="1", state=State(ActionState.NEW))
    repo.add(action)
    action.take(repo)
    assert repo.get("1").state.value == ActionState.PENDING
    with pytest.raises(LookupError):
        repo.update(Action(id="1", state=State(ActionState.PENDING)))
    with pytest.raises(LookupError):
        repo.update(Action(id="differentId", prev_state=State(ActionState.NEW)))


def test_repo_find_correlated_returns_selected_fields():
    repo = ActionRepository()
    repo.add(Action(id="1", name="a", correlation_id="c", step_id="s1"))
    repo.add(Action(id="2", name="b", correlation_id="c", step_id="s2"))
    repo.add(Action(id="3", name="c", correlation_id="other"))
    got = repo.find_correlated("c")
    assert [(a.id, a.step_id, a.name, a.correlation_id) for a in got] == [
        ("1", "s1", "", ""),
        ("2", "s2", "", ""),
    ]
    assert repo.find_correlated("none") == []


def test_pack_repo_get():
    repo = PackRepository([Pack(id="existingPack")])
    assert repo.get("existingPack") == Pack(id="existingPack")
    with pytest.raises(PackNotFoundError, match="pack not found"):
        repo.get("nonExistingPack")