from .mpc import MPCConfig, get_mpc_config, available_tunings

__all__ = [
    'MPCConfig',
    'get_mpc_config',
    'available_tunings',
]
