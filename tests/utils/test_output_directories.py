from pathlib import Path

from aura.setup_directories import (
    get_analysis_path,
    get_log_path,
    get_plot_path,
    get_raster_path,
    get_report_path,
    setup_output_directories,
)


def test_setup_output_directories_creates_all(tmp_path):
    dirs = setup_output_directories(tmp_path)

    expected = {"base", "rasters", "analysis", "plots", "reports", "logs"}

    assert set(dirs.keys()) == expected

    for path in dirs.values():
        assert isinstance(path, Path)
        assert path.exists()
        assert path.is_dir()


def test_setup_output_directories_is_idempotent(tmp_path):
    dirs1 = setup_output_directories(tmp_path)
    dirs2 = setup_output_directories(tmp_path)

    assert dirs1 == dirs2


def test_path_helpers(tmp_path):
    dirs = setup_output_directories(tmp_path)

    assert get_raster_path(dirs, "colombo", "harmonized", "r1") == dirs["rasters"] / "colombo" / "colombo_r1_harmonized.nc"
    assert get_analysis_path(dirs, "colombo", "parquet") == dirs["analysis"] / "colombo_risk_points.parquet"
    assert get_analysis_path(dirs, "colombo", "db", filename="x.db") == dirs["analysis"] / "x.db"
    assert get_plot_path(dirs, "colombo", "pop", "r1") == dirs["plots"] / "colombo" / "colombo_pop_r1.png"
    assert get_report_path(dirs, "colombo", "r1", "json") == dirs["reports"] / "colombo_r1_report.json"
    assert get_log_path(dirs, "colombo") == dirs["logs"] / "pipeline_colombo.log"
    assert get_log_path(dirs) == dirs["logs"] / "pipeline_latest.log"
    assert (dirs["plots"] / "colombo").is_dir()
