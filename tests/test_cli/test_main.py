"""
Тесты командной строки streamkmeans.
"""

import numpy as np
import pytest

from streamkmeans.data.points_io import read_centroids, read_points
from streamkmeans.main import main


@pytest.fixture
def input_files(tmp_path, four_points):
    X, initial_centroids = four_points
    points = tmp_path / "points.txt"
    centroids = tmp_path / "centroids.txt"
    points.write_text("\n".join(" ".join(str(v) for v in row) for row in X), encoding="utf-8")
    centroids.write_text(
        "\n".join(" ".join(str(v) for v in row) for row in initial_centroids), encoding="utf-8"
    )
    return points, centroids


class TestRunCommand:

    @pytest.mark.parametrize("strategy", ["cpu", "emulated"])
    def test_run_writes_labels(self, tmp_path, input_files, strategy):
        points, centroids = input_files
        output = tmp_path / "out.txt"
        centroids_out = tmp_path / "centroids_out.txt"

        code = main([
            "run", str(points), str(centroids), str(output), strategy, "1",
            "--centroids-output", str(centroids_out),
        ])

        assert code == 0
        labels = [int(line.split()[0]) for line in output.read_text(encoding="utf-8").splitlines()]
        assert labels == [0, 0, 1, 1]
        np.testing.assert_allclose(
            read_centroids(centroids_out), [[0.5, 0.0], [0.5, 10.0]], atol=1e-6
        )
        np.testing.assert_array_equal(read_points(output, labeled=True)[:, 1], [0, 0, 10, 10])

    def test_iterations_default_to_one(self, tmp_path, input_files):
        points, centroids = input_files
        output = tmp_path / "out.txt"

        assert main(["run", str(points), str(centroids), str(output), "cpu"]) == 0
        assert output.exists()

    def test_unknown_strategy(self, tmp_path, input_files):
        points, centroids = input_files
        output = tmp_path / "out.txt"

        assert main(["run", str(points), str(centroids), str(output), "ocl"]) == 1
        assert not output.exists()

    def test_empty_points_is_fatal(self, tmp_path, input_files):
        _, centroids = input_files
        empty = tmp_path / "empty.txt"
        empty.write_text("", encoding="utf-8")
        output = tmp_path / "out.txt"

        assert main(["run", str(empty), str(centroids), str(output), "cpu"]) == 1
        assert not output.exists()

    def test_dimension_mismatch_is_fatal(self, tmp_path, input_files):
        points, _ = input_files
        centroids = tmp_path / "c3.txt"
        centroids.write_text("0 0 0\n1 1 1\n", encoding="utf-8")
        output = tmp_path / "out.txt"

        assert main(["run", str(points), str(centroids), str(output), "cpu"]) == 1
        assert not output.exists()

    def test_missing_file_is_fatal(self, tmp_path, input_files):
        _, centroids = input_files
        output = tmp_path / "out.txt"

        assert main(["run", str(tmp_path / "nope.txt"), str(centroids), str(output), "cpu"]) == 1

    def test_zero_device_memory_is_fatal(self, tmp_path, input_files):
        points, centroids = input_files
        output = tmp_path / "out.txt"

        code = main([
            "run", str(points), str(centroids), str(output), "emulated",
            "--device-memory-mb", "0",
        ])

        assert code == 1
        assert not output.exists()


class TestGenerateCommand:

    def test_generate_then_run(self, tmp_path):
        data_dir = tmp_path / "data"
        assert main(["generate", str(data_dir), "--n", "120", "--d", "3", "--k", "3"]) == 0

        output = tmp_path / "out.txt"
        code = main([
            "run", str(data_dir / "points.txt"), str(data_dir / "centroids.txt"),
            str(output), "emulated", "3", "--labeled",
        ])

        assert code == 0
        assert len(output.read_text(encoding="utf-8").splitlines()) == 120

    def test_unwritable_out_dir(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        assert main(["generate", str(blocker / "data"), "--n", "20", "--k", "2"]) == 1
