import logging
import logging.handlers

import pytest

from utils.config import DEFAULT_CONFIG, merge_configs
from utils.logging_utils import configure_logging, log_exception, setup_logging


def _flush_root():
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_setup_logging_writes_rotating_file(tmp_path, restore_root_logging):
    log_file = setup_logging(log_dir=tmp_path, log_level='debug', enable_console=False)
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], logging.handlers.RotatingFileHandler)

    logging.getLogger('models.decision_tree').info('grew a tree')
    _flush_root()

    assert log_file.parent == tmp_path
    assert log_file.name.startswith('treelab_')
    assert 'models.decision_tree - INFO - grew a tree' in log_file.read_text(encoding='utf-8')


def test_setup_logging_replaces_previous_handlers(tmp_path, restore_root_logging):
    setup_logging(log_dir=tmp_path, log_level=logging.WARNING)
    setup_logging(log_dir=tmp_path, log_level=logging.WARNING)
    root = logging.getLogger()
    assert len(root.handlers) == 2
    assert root.level == logging.WARNING


def test_unknown_level_name_raises(tmp_path, restore_root_logging):
    with pytest.raises(ValueError):
        setup_logging(log_dir=tmp_path, log_level='LOUD')


def test_configure_logging_reads_configuration(tmp_path, restore_root_logging):
    config = merge_configs(DEFAULT_CONFIG, {
        'application': {'log_dir': str(tmp_path / 'runs')},
        'logging': {'level': 'WARNING', 'console': False},
    })
    log_file = configure_logging(config)
    assert log_file.parent == tmp_path / 'runs'
    assert logging.getLogger().level == logging.WARNING
    assert len(logging.getLogger().handlers) == 1

    configure_logging(config, verbose=True)
    assert logging.getLogger().level == logging.DEBUG


def test_log_exception_writes_traceback(tmp_path, restore_root_logging):
    log_file = setup_logging(log_dir=tmp_path, enable_console=False)
    try:
        raise ValueError('bad tree')
    except ValueError as e:
        log_exception(e, logging.getLogger('main'), context='Error fitting')
    _flush_root()

    content = log_file.read_text(encoding='utf-8')
    assert 'main - ERROR - Error fitting: ValueError: bad tree' in content
    assert 'Traceback (most recent call last)' in content
