# Vehicle kinematics
# FORBIDDEN: torch, logging, any I/O
# Arcade model: scalar speed along heading, no slip

import math
from dataclasses import dataclass

from .math_utils import clamp
from .types import VehicleState


@dataclass(frozen=True)
class VehicleParams:
    """Kinematic constants. Units are pixels and seconds."""
    max_speed: float = 300.0
    acceleration: float = 150.0
    friction: float = 50.0
    turn_speed_base: float = 3.0      # rad/s at standstill
    turn_speed_factor: float = 0.3
    min_turn_speed: float = 1.0       # no steering at or below this speed
    high_friction_threshold: float = 2.0
    reverse_fraction: float = 0.5
    bounce_factor: float = -0.3


def is_high_friction(surface_friction: float, params: VehicleParams) -> bool:
    return surface_friction > params.high_friction_threshold


def max_speed_on_surface(surface_friction: float, params: VehicleParams) -> float:
    """Top speed is halved on grass and other high-friction surfaces."""
    if is_high_friction(surface_friction, params):
        return params.max_speed * 0.5
    return params.max_speed


def apply_friction(speed: float, friction: float, dt: float) -> float:
    """Decay speed toward zero without changing sign."""
    if speed > 0:
        return max(0.0, speed - friction * dt)
    if speed < 0:
        return min(0.0, speed + friction * dt)
    return speed


def turn_rate(speed: float, params: VehicleParams) -> float:
    """Steering rate in rad/s, weaker at higher speeds."""
    speed_factor = 1.0 / (1.0 + abs(speed) / params.max_speed * params.turn_speed_factor)
    return params.turn_speed_base * speed_factor


def integrate(
    state: VehicleState,
    accel_input: float,
    steer_input: float,
    surface_friction: float,
    params: VehicleParams,
    dt: float,
) -> VehicleState:
    """Advance the vehicle one timestep.

    Friction scales with the surface multiplier only while coasting
    (no acceleration input).

    Args:
        state: Current state (not modified)
        accel_input: Acceleration input in [-1, 1]
        steer_input: Steering input in [-1, 1]
        surface_friction: Friction multiplier under the car
        params: Vehicle constants
        dt: Timestep in seconds

    Returns:
        New vehicle state before collision handling
    """
    speed = state.speed + accel_input * params.acceleration * dt

    friction = params.friction
    if accel_input == 0.0:
        friction = params.friction * surface_friction
    speed = apply_friction(speed, friction, dt)

    top = max_speed_on_surface(surface_friction, params)
    speed = clamp(speed, -top * params.reverse_fraction, top)

    heading = state.heading
    if abs(speed) > params.min_turn_speed:
        direction = 1.0 if speed > 0 else -1.0
        heading += steer_input * turn_rate(speed, params) * dt * direction

    x = state.x + math.cos(heading) * speed * dt
    y = state.y + math.sin(heading) * speed * dt

    return VehicleState(x=x, y=y, heading=heading, speed=speed)


def bounce(previous: VehicleState, attempted: VehicleState, params: VehicleParams) -> VehicleState:
    """Reject a move: restore the previous position and reverse damped speed."""
    return VehicleState(
        x=previous.x,
        y=previous.y,
        heading=attempted.heading,
        speed=attempted.speed * params.bounce_factor,
    )
