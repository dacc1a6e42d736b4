"""Root-level pytest fixtures for AURA test suite.

Provides shared configuration fixtures following Pydantic-based architecture.
All tests must use these fixtures instead of creating raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from aura.schemas import ParamConfig, UserConfig, resolve_config
from aura.setup_directories import setup_output_directories


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.

    Examples
    --------
    >>> def test_sampler_init(internal_config):
    ...     sampler = PointSampler(internal_config, region, grid)
    ...     assert sampler.sample_size == 500
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_seed(make_config):
    ...     config = make_config(seed=7, sample_size=50)
    ...     assert config.sampling.seed == 7
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


@pytest.fixture
def small_config(make_config, temp_dir):
    """Fast configuration for end-to-end runs: short period, coarse grid, few points."""
    return make_config(
        base_dir=str(temp_dir),
        start_year=2000,
        end_year=2004,
        resolution_m=2000,
        sample_size=200,
        seed=3,
        built_up={"start_epoch": 2000, "end_epoch": 2020},
    )


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard AURA output directory structure.

    Returns dict with keys: base, rasters, analysis, plots, reports, logs
    All directories are created and cleaned up automatically.
    """
    return setup_output_directories(temp_dir)


@pytest.fixture
def restore_root_logging():
    """Put back the root logger's handlers and level after a pipeline run reconfigures them."""
    import logging

    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
