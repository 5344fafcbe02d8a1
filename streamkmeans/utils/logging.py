import logging
from typing import Any, Dict


def setup_logger(level: int = logging.INFO) -> logging.Logger:
    """
    Создаёт и настраивает корневой логгер проекта ``streamkmeans``.

    Логгеры модулей пакета (``streamkmeans.core.reduction`` и т.д.) являются
    его потомками и пишут через тот же обработчик.

    :param level: минимальный уровень логирования
    :return: настроенный экземпляр :class:`logging.Logger`
    """
    logger = logging.getLogger("streamkmeans")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Чтобы сообщения не дублировались через root-логгер
    logger.propagate = False

    return logger


def format_run_prefix(meta: Dict[str, Any]) -> str:
    """
    Формирует текстовый префикс для логов по параметрам запуска.

    Ожидается словарь с ключами ``N``, ``D``, ``K`` и опциональным
    ``strategy``.
    """
    return (
        f"[N={meta['N']} D={meta['D']} K={meta['K']} "
        f"strategy={meta.get('strategy', 'cpu')}]"
    )
