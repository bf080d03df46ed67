"""
Property-based tests for the rollup and repayment engines.

Uses Hypothesis to check the arithmetic invariants over arbitrary
sequences of operations rather than hand-picked examples.
"""

from datetime import date
from decimal import Decimal

from hypothesis import given, settings, strategies as st

from grant_engines.approval import can_sign, signable_slots
from grant_engines.repayment import OverRepaymentPolicy, append_repayment, summarize
from grant_engines.rollup import apply_engaged_delta, changed_planned_totals, recompute_engaged
from grant_kernel.domain.approval import ApprovalSlot, ApprovalState, Profession, SlotSignature
from grant_kernel.exceptions import OverRepaymentError

amounts = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1000000"), places=2)

professions = st.sampled_from([p.value for p in Profession] + ["", "Inconnu"])


@settings(max_examples=100, deadline=None)
@given(notified=amounts, contributions=st.lists(amounts, max_size=20))
def test_incremental_deltas_match_full_recompute(notified, contributions):
    engaged = Decimal("0")
    available = notified
    for value in contributions:
        result = apply_engaged_delta(notified, engaged, value)
        engaged, available = result.engaged, result.available
        assert available == notified - engaged
    assert recompute_engaged(notified, contributions).engaged == engaged


@settings(max_examples=100, deadline=None)
@given(
    notified=amounts,
    history=st.lists(st.tuples(amounts, amounts), min_size=1, max_size=10),
)
def test_amend_then_delete_returns_to_notified(notified, history):
    engaged = Decimal("0")
    for old, new in history:
        engaged = apply_engaged_delta(notified, engaged, old).engaged
        engaged = apply_engaged_delta(notified, engaged, new - old).engaged
        engaged = apply_engaged_delta(notified, engaged, -new).engaged
    assert engaged == Decimal("0")


@settings(max_examples=100, deadline=None)
@given(children=st.lists(st.tuples(st.sampled_from("abc"), amounts), max_size=15))
def test_planned_pass_converges_in_one_step(children):
    current = {parent: Decimal("0") for parent in "abc"}
    current.update(changed_planned_totals(current, children))
    assert changed_planned_totals(current, children) == {}
    for parent in "abc":
        assert current[parent] == sum((v for p, v in children if p == parent), Decimal("0"))


@settings(max_examples=100, deadline=None)
@given(principal=amounts, payments=st.lists(amounts, min_size=1, max_size=15))
def test_clamped_ledger_never_exceeds_principal(principal, payments):
    entries = ()
    status = "active"
    for index, amount in enumerate(payments):
        try:
            outcome = append_repayment(
                principal=principal,
                entries=entries,
                status=status,
                terminal_status="repaid",
                entry_id=str(index),
                entry_date=date(2024, 1, 1),
                amount=amount,
                policy=OverRepaymentPolicy.CLAMP,
            )
        except OverRepaymentError:
            assert summarize(principal, entries).remaining == Decimal("0")
            continue
        entries, status = outcome.entries, outcome.status
        assert outcome.summary.total_repaid <= principal
        assert (status == "repaid") == (outcome.summary.total_repaid >= principal)


@settings(max_examples=200, deadline=None)
@given(
    signed=st.sets(st.sampled_from(list(ApprovalSlot))),
    profession=professions,
)
def test_final_approval_never_signable_before_supervisors(signed, profession):
    approvals = ApprovalState()
    for slot in signed:
        approvals = approvals.with_slot(slot, SlotSignature("X", date(2024, 1, 1)))
    supervisors_done = {ApprovalSlot.SUPERVISOR1, ApprovalSlot.SUPERVISOR2} <= signed
    if can_sign(approvals, profession, ApprovalSlot.FINAL_APPROVAL):
        assert supervisors_done
    assert len(signable_slots(approvals, profession)) <= 1
    for slot in signed:
        assert not can_sign(approvals, profession, slot)
