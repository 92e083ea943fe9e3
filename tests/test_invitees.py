"""Tests for service_notifications.core.invitees — invite deltas."""

from service_notifications.core.invitees import compute_invitees, resolve_assignee_accounts
from service_notifications.data.models import DirectoryAccount, EventAssignment


def _assignment(aid, person_id, position="Vocals"):
    return EventAssignment(id=aid, event_id=1, person_id=person_id, team_position_name=position)


class TestComputeInvitees:
    def test_sticky_and_assignees_when_nothing_invited(self):
        assert compute_invitees([], ["UADMIN"], ["U1", "U2"]) == ["UADMIN", "U1", "U2"]

    def test_already_invited_are_excluded(self):
        assert compute_invitees(["UADMIN", "U1"], ["UADMIN"], ["U1", "U2"]) == ["U2"]

    def test_duplicate_assignee_invited_once(self):
        assert compute_invitees([], [], ["U1", "U1", "U2", "U1"]) == ["U1", "U2"]

    def test_sticky_also_assigned_invited_once(self):
        assert compute_invitees([], ["U1"], ["U1"]) == ["U1"]

    def test_no_new_accounts_invites_nobody(self):
        assert compute_invitees(["U1", "U2"], ["U1"], ["U2"]) == []

    def test_blank_ids_are_ignored(self):
        assert compute_invitees([], ["", "U1"], [""]) == ["U1"]

    def test_monotonic_across_runs(self):
        invited: list[str] = []
        for assignees in (["U1"], ["U1", "U2"], ["U2"], []):
            delta = compute_invitees(invited, ["UADMIN"], assignees)
            before = set(invited)
            invited.extend(delta)
            assert before <= set(invited)
        assert invited == ["UADMIN", "U1", "U2"]


class TestResolveAssigneeAccounts:
    def test_maps_linked_people_in_order(self):
        accounts = {
            10: [DirectoryAccount(id="U10", roster_id=10)],
            20: [DirectoryAccount(id="U20", roster_id=20)],
        }
        assignments = [_assignment(1, 20), _assignment(2, 10)]
        result = resolve_assignee_accounts(assignments, lambda pid: accounts.get(pid, []))
        assert result == ["U20", "U10"]

    def test_unlinked_people_are_skipped(self):
        assignments = [_assignment(1, 10), _assignment(2, 99)]
        accounts = {10: [DirectoryAccount(id="U10", roster_id=10)]}
        result = resolve_assignee_accounts(assignments, lambda pid: accounts.get(pid, []))
        assert result == ["U10"]

    def test_first_linked_account_is_used(self):
        accounts = {10: [DirectoryAccount(id="UA"), DirectoryAccount(id="UB")]}
        result = resolve_assignee_accounts([_assignment(1, 10)], lambda pid: accounts[pid])
        assert result == ["UA"]

    def test_person_on_two_positions_appears_twice(self):
        accounts = {10: [DirectoryAccount(id="U10")]}
        assignments = [_assignment(1, 10, "Vocals"), _assignment(2, 10, "Guitar")]
        result = resolve_assignee_accounts(assignments, lambda pid: accounts[pid])
        assert result == ["U10", "U10"]
        assert compute_invitees([], [], result) == ["U10"]
