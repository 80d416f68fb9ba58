"""
Default simulation settings shared by the city model, scenario analysis and the CLI.
"""

# San Francisco area: lat_min, lat_max, lon_min, lon_max
DEFAULT_BOUNDS = (37.7075, 37.8075, -122.5125, -122.3525)

DEFAULT_SIMULATION_CONFIG = {
    'num_taxis': 10,
    'request_rate': 0.5,        # expected new passengers per step
    'use_nearest': True,
    'bounds': DEFAULT_BOUNDS,
    'speed_kmh': 30.0,
    'step_minutes': 1.0,
    'cancel_rate': 0.02,        # chance per step that an ASSIGNED ride is cancelled
    'patience': 10,             # steps a passenger waits for a taxi
    'seed': None,
}

DEFAULT_SIMULATION_STEPS = 200
