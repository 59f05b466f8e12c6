import pytest
from pydantic import ValidationError

from safety_layers.agent import (
    MUTATION_LIMIT,
    AgentS,
    AgentZ,
    LayerCountError,
    ProbeInFlightError,
    ProbeOrderError,
    Succ,
    Zero,
)
from safety_layers.counter import Counter, counter_agent
from safety_layers.models import REQUEST_MODEL, Decision, DecisionKind

# ---------------------------------------------------------------------------
# Decision Contract Tests
# ---------------------------------------------------------------------------

def test_decision_equality_and_kind():
    assert Decision.commit(1) == Decision.commit(1)
    assert Decision.commit(1) != Decision.commit(0)
    assert Decision.commit(1) != REQUEST_MODEL
    assert Decision.request_model() == REQUEST_MODEL
    assert REQUEST_MODEL.kind is DecisionKind.REQUEST_MODEL

def test_decision_commit_none_is_still_an_action():
    decision = Decision.commit(None)
    assert decision.is_action
    assert not decision.requests_model
    assert decision != REQUEST_MODEL

def test_decision_request_cannot_carry_action():
    with pytest.raises(ValidationError):
        Decision(kind=DecisionKind.REQUEST_MODEL, action=3)

def test_decision_str():
    assert str(Decision.commit(1)) == "Action(1)"
    assert str(REQUEST_MODEL) == "RequestModel"

# ---------------------------------------------------------------------------
# Base Agent Tests
# ---------------------------------------------------------------------------

def test_base_agent_always_acts():
    z = counter_agent(target=4, current=0)
    assert z.decide() == Decision.commit(1)
    z.act(1)
    assert z.model == Counter(target=4, current=1)

def test_base_agent_reaches_target_and_stops():
    z = counter_agent(target=2, current=0)
    z.act(z.decide().action)
    z.act(z.decide().action)
    assert z.decide() == Decision.commit(0)

def test_update_model_replaces_model():
    z = counter_agent(target=4, current=0)
    z.update_model(Counter(target=1, current=5))
    assert z.decide() == Decision.commit(-1)

def test_clone_copies_model():
    z = counter_agent(target=4, current=1)
    twin = z.clone()
    twin.act(1)
    assert z.model.current == 1
    assert twin.model.current == 2
    assert twin.decider is z.decider

# ---------------------------------------------------------------------------
# Probe Discipline Tests
# ---------------------------------------------------------------------------

def test_mutate_then_undo_restores_model():
    z = counter_agent(target=4, current=0)
    probe = z.mutate()
    assert z.model.target == 3
    assert probe.delta == -1
    assert z.pending_probes == 1
    z.undo(probe)
    assert z.model.target == 4
    assert z.pending_probes == 0
    assert not probe.open

def test_undo_out_of_order_raises():
    z = counter_agent(target=4, current=0)
    outer = z.mutate()
    inner = z.mutate()
    with pytest.raises(ProbeOrderError):
        z.undo(outer)
    z.undo(inner)
    z.undo(outer)
    assert z.model.target == 4

def test_undo_twice_raises():
    z = counter_agent(target=4, current=0)
    probe = z.mutate()
    z.undo(probe)
    with pytest.raises(ProbeOrderError):
        z.undo(probe)

def test_undo_foreign_probe_raises():
    a = counter_agent()
    b = counter_agent()
    probe = a.mutate()
    with pytest.raises(ProbeOrderError):
        b.undo(probe)

def test_act_during_probe_raises():
    z = counter_agent(target=4, current=0)
    with z.probe():
        with pytest.raises(ProbeInFlightError):
            z.act(1)
        with pytest.raises(ProbeInFlightError):
            z.update_model(Counter(target=1))
    z.act(1)
    assert z.model.current == 1

def test_probe_context_restores_on_error():
    z = counter_agent(target=4, current=0)
    with pytest.raises(RuntimeError):
        with z.probe():
            assert z.model.target == 3
            raise RuntimeError("boom")
    assert z.model.target == 4
    assert z.pending_probes == 0

@pytest.mark.parametrize("layers", [0, 1, 2, 3])
def test_mutate_undo_round_trip_preserves_decision(layers):
    agent = counter_agent(target=4, current=2).add(layers)
    before = agent.decide()
    probe = agent.mutate()
    agent.undo(probe)
    assert agent.decide() == before
    assert agent.z().model == Counter(target=4, current=2)

# ---------------------------------------------------------------------------
# Peano Structure Tests
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("n", [0, 1, 2, 5])
def test_add_builds_n_successor_shells(n):
    z = counter_agent()
    agent = z.add(n)
    assert agent.layers == n
    shells = 0
    current = agent
    while isinstance(current, Succ):
        shells += 1
        current = current.agent.core
    assert shells == n
    assert isinstance(current, Zero)
    assert current.agent is z

def test_add_negative_raises():
    with pytest.raises(LayerCountError):
        counter_agent().add(-1)

def test_dec_returns_to_original_zero():
    z = counter_agent()
    agent = z.add(3)
    for _ in range(3):
        agent = agent.dec()
    assert isinstance(agent, Zero)
    assert agent.z() is z
    assert agent.z().model == Counter(target=4, current=0)

def test_dec_on_zero_is_identity():
    zero = counter_agent().add(0)
    assert zero.dec() is zero

def test_inc_matches_add_shape():
    z = counter_agent()
    grown = z.add(2).inc()
    assert grown.layers == z.clone().add(3).layers
    assert grown.z() is z

def test_inc_keeps_inner_structure():
    agent = counter_agent().add(1)
    grown = agent.inc()
    assert grown.dec() is agent

def test_inc_inherits_mutation_limit():
    agent = counter_agent().add(1, mutation_limit=2)
    assert agent.inc().agent.mutation_limit == 2
    assert agent.inc(mutation_limit=7).agent.mutation_limit == 7
    assert counter_agent().add(0).inc().agent.mutation_limit == MUTATION_LIMIT

def test_z_is_shared_by_all_layers():
    z = counter_agent()
    agent = z.add(3)
    assert agent.z() is z
    assert agent.dec().z() is z
    agent.act(1)
    assert z.model.current == 1

def test_update_model_reaches_base_through_layers():
    z = counter_agent()
    agent = z.add(2)
    agent.update_model(Counter(target=9, current=9))
    assert z.model == Counter(target=9, current=9)

def test_negative_mutation_limit_rejected():
    with pytest.raises(ValueError):
        AgentS(counter_agent().add(0), mutation_limit=-1)

def test_custom_operations_are_called_in_place():
    model = {"x": 0}
    z = AgentZ(
        model,
        decider=lambda m: m["x"],
        actor=lambda m, a: m.update(x=m["x"] + a + 1),
        mutater=lambda m: m.update(x=m["x"] + 10) or 10,
        undoer=lambda m, d: m.update(x=m["x"] - d),
    )
    z.act(0)
    assert model["x"] == 1
    with z.probe() as probe:
        assert probe.delta == 10
        assert model["x"] == 11
    assert model["x"] == 1
