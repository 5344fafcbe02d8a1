"""
Командная строка streamkmeans.

Режимы:
1. run - KMeans над файлами точек и центроидов выбранной стратегией
   (cpu | gpu | emulated) с записью точек с метками кластеров;
2. generate - генерация синтетического набора точек и центроидов.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from streamkmeans.config import DeviceConfig, RunConfig, Strategy
from streamkmeans.core import create_kmeans, parse_strategy
from streamkmeans.data.points_io import (
    read_centroids,
    read_points,
    write_centroids,
    write_points,
)
from streamkmeans.data.validation import validate_inputs
from streamkmeans.errors import KMeansError
from streamkmeans.metrics.timers import Timer
from streamkmeans.utils.logging import format_run_prefix, setup_logger

_MB = 1024 * 1024


class _PrefixedLogger:
    """Обёртка над логгером, добавляющая префикс к каждому сообщению."""

    def __init__(self, base_logger: logging.Logger | None, prefix: str) -> None:
        self._base = base_logger
        self._prefix = prefix

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self._base:
            self._base.info(f"{self._prefix} {msg}", *args, **kwargs)


def run_kmeans(
    config: RunConfig,
    logger: logging.Logger,
    labeled_input: bool = False,
) -> None:
    """
    Загружает входные файлы, выполняет KMeans и сохраняет результат.

    Ошибки входа (пустые или несогласованные данные) поднимаются до
    запуска итераций, и выходной файл при этом не создаётся.
    """
    logger.info("Read input file ...")
    X = read_points(config.input_path, labeled=labeled_input)
    logger.info("Read center file ...")
    centroids = read_centroids(config.centroids_path)
    logger.debug(f"Centroid size: {centroids.shape[0]}")

    validate_inputs(X, centroids)
    N, D = X.shape
    K = centroids.shape[0]
    prefix = format_run_prefix({"N": N, "D": D, "K": K, "strategy": config.strategy.value})

    with Timer(f"time_{config.strategy.value}=") as t_total:
        model = create_kmeans(
            config.strategy,
            n_iters=config.iterations,
            device_config=config.device,
            logger=_PrefixedLogger(logger, prefix),
        )
        model.initialize(D, K)

        with Timer(f"timeCompute_{config.strategy.value}=") as t_compute:
            result = model.run(X, centroids, config.iterations)

    logger.info(f"{prefix} {t_compute.format()}")
    logger.info(f"{prefix} {t_total.format()}")

    failed = getattr(model, "failed_flushes", 0)
    if failed:
        logger.warning(f"{prefix} {failed} reduction batches were lost to device errors")

    write_points(config.output_path, X, result.labels)
    if config.centroids_output_path is not None:
        write_centroids(config.centroids_output_path, result.centroids)


def run_generation(out_dir: Path, N: int, D: int, K: int, seed: int, logger: logging.Logger) -> None:
    from streamkmeans.data.generate import generate_blobs, write_dataset

    dataset = generate_blobs(N=N, D=D, K=K, seed=seed)
    points_path, centroids_path = write_dataset(out_dir, dataset)
    logger.info(f"Points: {points_path}; centroids: {centroids_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="streamkmeans")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Уровень логирования.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Запустить KMeans над файлами точек и центроидов.")
    run.add_argument("input", type=Path, help="Файл точек.")
    run.add_argument("centroids", type=Path, help="Файл начальных центроидов.")
    run.add_argument("output", type=Path, help="Файл для точек с метками кластеров.")
    # Проверка значения - в parse_strategy, чтобы сообщение было единым
    run.add_argument("type", help="|".join(s.value for s in Strategy))
    run.add_argument("iterations", type=int, nargs="?", default=1, help="Число итераций.")
    run.add_argument(
        "--centroids-output",
        type=Path,
        default=None,
        help="Куда сохранить итоговые центроиды.",
    )
    run.add_argument(
        "--device-memory-mb",
        type=float,
        default=None,
        help="Ограничение памяти устройства для сумматоров (МБ).",
    )
    run.add_argument(
        "--device-id",
        type=int,
        default=0,
        help="Номер CUDA-устройства для стратегии gpu.",
    )
    run.add_argument(
        "--labeled",
        action="store_true",
        help="Первая колонка файла точек - метка (например, вывод generate).",
    )

    gen = sub.add_parser("generate", help="Сгенерировать синтетический набор точек.")
    gen.add_argument("out_dir", type=Path)
    gen.add_argument("--n", type=int, default=10_000, help="Количество точек.")
    gen.add_argument("--d", type=int, default=2, help="Размерность.")
    gen.add_argument("--k", type=int, default=4, help="Количество кластеров.")
    gen.add_argument("--seed", type=int, default=42)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger(getattr(logging, args.log_level))

    try:
        if args.command == "generate":
            run_generation(args.out_dir, args.n, args.d, args.k, args.seed, logger)
            return 0

        memory_limit = (
            int(args.device_memory_mb * _MB) if args.device_memory_mb is not None else None
        )
        config = RunConfig(
            input_path=args.input,
            centroids_path=args.centroids,
            output_path=args.output,
            strategy=parse_strategy(args.type),
            iterations=args.iterations,
            centroids_output_path=args.centroids_output,
            device=DeviceConfig(device_id=args.device_id, memory_limit_bytes=memory_limit),
        )
        run_kmeans(config, logger, labeled_input=args.labeled)
    except (KMeansError, RuntimeError, OSError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
