from __future__ import annotations

import asyncio

import pytest

from conftest import RecordingRouter
from depot.app.navigation.session_gate import (
    LOADING_PLACEHOLDER,
    GatePhase,
    NavigationTarget,
    SessionGate,
    decide_navigation,
)
from depot.app.state.session_state import SessionSnapshot


def snap(authenticated: bool, route_group: str = "login", ready: bool = True) -> SessionSnapshot:
    return SessionSnapshot(
        is_authenticated=authenticated,
        is_loading=not ready,
        is_ready=ready,
        route_group=route_group,
    )


@pytest.mark.parametrize(
    ("authenticated", "in_login", "changed", "expected"),
    [
        (False, False, False, NavigationTarget.LOGIN),
        (False, False, True, NavigationTarget.LOGIN),
        (False, True, True, NavigationTarget.LOGIN),
        (False, True, False, NavigationTarget.NONE),
        (True, True, True, NavigationTarget.LANDING),
        (True, True, False, NavigationTarget.NONE),
        (True, False, True, NavigationTarget.NONE),
        (True, False, False, NavigationTarget.NONE),
    ],
)
def test_decision_table(authenticated, in_login, changed, expected):
    assert decide_navigation(authenticated, in_login, changed) is expected


@pytest.mark.asyncio
async def test_no_navigation_before_ready(router, gate_config):
    gate = SessionGate(router, gate_config)

    assert gate.observe(snap(False, route_group="", ready=False)) is NavigationTarget.NONE
    await asyncio.sleep(gate_config.navigation_delay * 2)

    assert router.replaced == []
    assert gate.phase is GatePhase.SPLASH
    assert gate.render("tabs") == LOADING_PLACEHOLDER


@pytest.mark.asyncio
async def test_login_edge_schedules_exactly_one_landing(gate_config):
    router = RecordingRouter("/login")
    gate = SessionGate(router, gate_config)

    results = [gate.observe(snap(value)) for value in (False, False, True, True)]
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert results == [
        NavigationTarget.NONE,
        NavigationTarget.NONE,
        NavigationTarget.LANDING,
        NavigationTarget.NONE,
    ]
    assert gate.navigations_scheduled == 1
    assert router.replaced == [gate_config.landing_route]
    assert gate.phase is GatePhase.LOGGED_IN


@pytest.mark.asyncio
async def test_sign_out_before_delay_supersedes_landing(gate_config):
    router = RecordingRouter("/login")
    gate = SessionGate(router, gate_config)

    gate.observe(snap(False))
    assert gate.observe(snap(True)) is NavigationTarget.LANDING
    assert gate.pending_target is NavigationTarget.LANDING

    assert gate.observe(snap(False)) is NavigationTarget.LOGIN
    assert gate.pending_target is NavigationTarget.LOGIN

    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert gate_config.landing_route not in router.replaced
    assert router.replaced == [gate_config.login_route]


@pytest.mark.asyncio
async def test_unauthenticated_outside_login_goes_to_login_once(gate_config):
    router = RecordingRouter("/")
    gate = SessionGate(router, gate_config)

    gate.observe(snap(False, route_group=""))
    # Loading settles again with nothing new to say
    gate.observe(snap(False, route_group=""))
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert router.replaced == [gate_config.login_route]
    assert gate.navigations_fired == 1

    gate.observe(snap(False, route_group="login"))
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert router.replaced == [gate_config.login_route]


@pytest.mark.asyncio
async def test_authenticated_on_allowed_screen_stays(gate_config):
    router = RecordingRouter("/scanner")
    gate = SessionGate(router, gate_config)

    assert gate.observe(snap(True, route_group="scanner")) is NavigationTarget.NONE
    assert gate.observe(snap(True, route_group="(tabs)")) is NavigationTarget.NONE
    await asyncio.sleep(gate_config.navigation_delay * 2)

    assert router.replaced == []
    assert gate.render("tabs") == "tabs"


@pytest.mark.asyncio
async def test_restored_session_on_login_screen_goes_to_landing(gate_config):
    router = RecordingRouter("/login")
    gate = SessionGate(router, gate_config)

    assert gate.observe(snap(True)) is NavigationTarget.LANDING
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert router.replaced == [gate_config.landing_route]


@pytest.mark.asyncio
async def test_authenticated_user_returning_to_login_is_left_alone(gate_config):
    router = RecordingRouter("/portal-selection")
    gate = SessionGate(router, gate_config)

    gate.observe(snap(True, route_group="portal-selection"))
    assert gate.observe(snap(True, route_group="login")) is NavigationTarget.NONE


@pytest.mark.asyncio
async def test_route_change_cancels_pending_navigation(gate_config):
    router = RecordingRouter("/")
    gate = SessionGate(router, gate_config)

    gate.observe(snap(False, route_group=""))
    # The user reached the login screen on their own before the delay elapsed
    gate.observe(snap(False, route_group="login"))
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert router.replaced == []


@pytest.mark.asyncio
async def test_close_cancels_pending_navigation(gate_config):
    router = RecordingRouter("/")
    gate = SessionGate(router, gate_config)

    gate.observe(snap(False, route_group=""))
    await gate.close()
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert router.replaced == []
    assert gate.pending_target is NavigationTarget.NONE


@pytest.mark.asyncio
async def test_router_failure_is_logged_not_raised(gate_config, caplog):
    class BrokenRouter(RecordingRouter):
        async def replace(self, path):
            raise RuntimeError("screen stack unmounted")

    gate = SessionGate(BrokenRouter("/"), gate_config)
    gate.observe(snap(False, route_group=""))
    await asyncio.sleep(gate_config.navigation_delay * 3)

    assert gate.navigations_fired == 1
    assert "screen stack unmounted" in caplog.text
