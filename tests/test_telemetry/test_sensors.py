# Tests for ray-cast sensors and observation encoding

import math

import pytest
import numpy as np
from racing_dqn.core.types import ObservationLayout, VehicleState
from racing_dqn.telemetry.sensors import SensorEncoder, cast_rays, clearance_scores, danger_scores


class TestCastRays:
    
    def test_forward_distance(self, corridor_track):
        """Wall column x=239 is first sampled at distance 220 from x=20."""
        d = cast_rays(corridor_track, 20.0, 40.0, [0.0], max_distance=900.0)
        assert d[0] == pytest.approx(220.0)
    
    def test_side_walls(self, corridor_track):
        d = cast_rays(corridor_track, 20.0, 40.0, [-math.pi / 2, math.pi / 2], max_distance=200.0)
        assert np.allclose(d, [40.0, 40.0])
    
    def test_max_range(self, corridor_track):
        d = cast_rays(corridor_track, 20.0, 40.0, [0.0], max_distance=100.0)
        assert d[0] == 100.0
    
    def test_out_of_bounds_stops_ray(self, corridor_track):
        """Rays leaving the image stop even without a wall pixel."""
        corridor_track.surfaces[:, -1] = corridor_track.surfaces[1, 1]
        d = cast_rays(corridor_track, 20.0, 40.0, [0.0], max_distance=900.0)
        assert d[0] == pytest.approx(220.0)
    
    def test_shape(self, corridor_track):
        d = cast_rays(corridor_track, 20.0, 40.0, np.linspace(-1, 1, 9), max_distance=50.0)
        assert d.shape == (9,)


class TestScores:
    
    def test_danger(self):
        scores = danger_scores(np.array([0.0, 45.0, 200.0]), 50.0)
        assert scores[0] == 1.0
        assert scores[1] == pytest.approx(1.0)
        assert scores[2] == pytest.approx(1.0 / 4.1)
    
    def test_clearance(self):
        scores = clearance_scores(np.array([0.0, 450.0, 900.0, 1000.0]), 900.0)
        assert np.allclose(scores, [0.0, 0.5, 1.0, 1.0])


class TestSensorEncoder:
    
    def test_layout(self, corridor_track):
        encoder = SensorEncoder(corridor_track)
        obs = encoder.encode(VehicleState(20.0, 40.0, 0.0, 150.0))
        
        assert encoder.dimension == 23
        assert obs.shape == (23,)
        assert obs.dtype == np.float32
        assert obs[0] == pytest.approx(0.5)
        assert obs[1] == pytest.approx(0.0)
        assert obs[2] == pytest.approx(1.0)
        assert obs[3] == pytest.approx(20.0 / 240.0)
        assert obs[4] == pytest.approx(40.0 / 80.0)
    
    def test_ray_features(self, corridor_track):
        encoder = SensorEncoder(corridor_track)
        layout = encoder.layout
        obs = encoder.encode(VehicleState(20.0, 40.0, 0.0, 0.0))
        
        short = obs[layout.short_slice]
        long = obs[layout.long_slice]
        # Straight-ahead short ray sees nothing within 200 px
        assert short[6] == pytest.approx(1.0 / 4.1)
        # Side walls at 40 px are inside the saturation distance
        assert short[0] == 1.0
        assert short[-1] == pytest.approx(short[0])
        # Straight-ahead long ray
        assert long[2] == pytest.approx(220.0 / 900.0)
        assert np.all((obs[5:] >= 0.0) & (obs[5:] <= 1.0))
    
    def test_stateless(self, corridor_track):
        encoder = SensorEncoder(corridor_track)
        state = VehicleState(50.0, 30.0, 0.7, 80.0)
        assert np.array_equal(encoder.encode(state), encoder.encode(state))
    
    def test_custom_layout(self, corridor_track):
        layout = ObservationLayout(short_ray_offsets=(0.0,), long_ray_offsets=(0.0,))
        encoder = SensorEncoder(corridor_track, layout)
        assert encoder.encode(corridor_track.start_state()).shape == (7,)
