"""
Puck Herding Web Server — Layer 3 (FastAPI + WebSocket)

Runs the frame loop and streams puck / alert / hold state to browser
clients over WebSocket. Clients send board-local pointer events and
pause / resume / reset commands; rendering happens client-side.
"""

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import fields

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import Response

from herd_config import HerdConfig
from herd_controller import HerdController
from herd_presets import SCENARIOS
from logging_config import setup_logging

logger = logging.getLogger(__name__)

# ── Controller ──────────────────────────────────────────────────────────────

ctrl = HerdController()


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    task = asyncio.create_task(game_loop())
    yield
    task.cancel()


app = FastAPI(lifespan=lifespan)

clients: list[WebSocket] = []

# ── Tunable params (attr, label, min, max, step) ────────────────────────────

HERD_PARAMS = [
    ("max_speed",             "Max Speed",       40.0,  400.0, 5.0),
    ("damping",               "Damping",         0.90,  1.0,   0.001),
    ("wander_strength",       "Wander",          0.0,   80.0,  1.0),
    ("jitter_strength",       "Jitter",          0.0,   120.0, 2.0),
    ("jitter_chance_per_sec", "Jitter Chance",   0.0,   3.0,   0.02),
    ("goal_leak_strength",    "Goal Leak",       0.0,   120.0, 1.0),
    ("stick_push_strength",   "Stick Push",      50.0,  1500.0, 10.0),
    ("stick_friction",        "Stick Friction",  0.50,  1.0,   0.01),
    ("wall_bounce",           "Wall Bounce",     0.10,  1.0,   0.01),
    ("puck_restitution",      "Puck Rest.",      0.0,   1.0,   0.01),
    ("alert_flash_ms",        "Alert Flash ms",  50.0,  2000.0, 25.0),
]

PARAM_DEFAULTS = {f.name: f.default for f in fields(HerdConfig)
                  if f.name in {attr for attr, *_ in HERD_PARAMS}}

# ── Async frame loop ────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def game_loop():
    """Main frame loop running at ~60 fps."""
    last_time = time.perf_counter()

    while True:
        now = time.perf_counter()
        dt = now - last_time
        last_time = now

        # dt clamping happens inside ctrl.step (config.max_dt)
        _, events = ctrl.step(dt)

        if clients:
            frame_msg = _build_frame_message(events)
            dead: list[WebSocket] = []
            for ws in clients:
                try:
                    await ws.send_text(frame_msg)
                except Exception:
                    dead.append(ws)
            for ws in dead:
                if ws in clients:
                    clients.remove(ws)

        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        await asyncio.sleep(sleep_time if sleep_time > 0 else 0)


def _build_frame_message(events: list) -> str:
    """Serialize the published snapshot into a compact JSON frame."""
    snap = ctrl.snapshot
    frame = {
        "type": "frame",
        "t": round(snap.time, 4),
        "frame": snap.frame,
        "pucks": [{"id": p.id, "pos": [round(p.x, 2), round(p.y, 2)]} for p in snap.pucks],
        "stick": {"pos": [round(snap.stick.x, 2), round(snap.stick.y, 2)],
                  "down": snap.stick.active},
        "alerts": sorted(snap.alerts),
        "hold": round(snap.hold_seconds, 2),
        "best": round(snap.best_hold_seconds, 2),
        "all_held": snap.all_held,
        "in_zone": snap.in_target_count,
        "paused": snap.paused,
        "events": events,
        "impacts": [{"type": ev["type"], "speed": round(float(ev["speed"]), 2)}
                    for ev in ctrl.physics_events],
    }
    return json.dumps(frame, separators=(',', ':'))


def _build_init_message() -> str:
    cfg = ctrl.config
    zones = [{"label": z.label, "kind": z.kind.name, "x0": z.x0, "x1": z.x1, "mult": z.mult}
             for z in ctrl.zones.zones]
    return json.dumps({
        "type": "init",
        "board_width": cfg.board_width,
        "board_height": cfg.board_height,
        "puck_radius": cfg.puck_radius,
        "stick_radius": cfg.stick_radius,
        "puck_count": cfg.puck_count,
        "zones": zones,
    })


# ── Physics params helpers ──────────────────────────────────────────────────

def _get_params_data() -> list:
    result = []
    for attr, label, mn, mx, step in HERD_PARAMS:
        result.append({
            "attr": attr, "label": label,
            "value": round(getattr(ctrl.config, attr), 6),
            "min": mn, "max": mx, "step": step,
        })
    return result


def _adjust_param(idx: int, direction: int, fine: bool) -> float | None:
    if not 0 <= idx < len(HERD_PARAMS):
        return None
    attr, label, mn, mx, step = HERD_PARAMS[idx]
    s = step / 10.0 if fine else step
    cur = getattr(ctrl.config, attr)
    new_val = max(mn, min(mx, cur + direction * s))
    ctrl.update_config(**{attr: new_val})
    return new_val


# ── Client message dispatch ─────────────────────────────────────────────────

def _handle_message(msg: dict) -> dict | None:
    """Apply one client message. Returns a reply dict, if any."""
    cmd = msg.get("cmd", "")
    t = time.perf_counter()
    if cmd == "pointer_down":
        ctrl.press_stick(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)), t)
    elif cmd == "pointer_move":
        ctrl.move_stick(float(msg.get("x", 0.0)), float(msg.get("y", 0.0)), t)
    elif cmd == "pointer_up":
        ctrl.release_stick()
    elif cmd in ("pause", "resume", "toggle_pause", "reset"):
        ctrl.submit(cmd)
    elif cmd == "scenario":
        entry = SCENARIOS.get(str(msg.get("key", "")))
        if entry is not None:
            fn, label = entry
            ctrl.load_scenario(fn, label)
    elif cmd == "get_state":
        return {"type": "state_json", "data": ctrl.get_state_json()}
    elif cmd == "get_params":
        return {"type": "params", "data": _get_params_data()}
    elif cmd == "adjust_param":
        idx = int(msg.get("index", 0))
        value = _adjust_param(idx, int(msg.get("direction", 0)), bool(msg.get("fine", False)))
        if value is not None:
            return {"type": "param_update", "index": idx, "value": round(value, 6)}
    elif cmd == "reset_params":
        ctrl.update_config(**PARAM_DEFAULTS)
        return {"type": "params", "data": _get_params_data()}
    else:
        logger.debug("ignoring unknown client cmd %r", cmd)
    return None


# ── Endpoints ───────────────────────────────────────────────────────────────

@app.get("/state")
async def state():
    return Response(ctrl.get_state_json(), media_type="application/json")


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)
    logger.info("client connected (%d total)", len(clients))
    await ws.send_text(_build_init_message())

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            reply = _handle_message(msg)
            if reply is not None:
                await ws.send_text(json.dumps(reply))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)
        ctrl.release_stick()
        logger.info("client disconnected (%d left)", len(clients))


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=False)
