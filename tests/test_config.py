import json

import pytest

from models.decision_tree import TreeBuilderConfig
from utils.config import (DEFAULT_CONFIG, builder_config_from_config, get_config_value, load_configuration,
                          merge_configs, save_configuration, set_config_value, validate_configuration)


def test_missing_file_is_written_with_defaults(tmp_path):
    path = tmp_path / 'config.json'
    config = load_configuration(path)
    assert config == DEFAULT_CONFIG
    assert json.loads(path.read_text())['decision_tree']['min_samples_leaf'] == 5


def test_user_values_are_merged(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'decision_tree': {'max_depth': 4}, 'pruning': {'size': 3}}))
    config = load_configuration(path)
    assert config['decision_tree']['max_depth'] == 4
    assert config['decision_tree']['min_samples_split'] == 2
    assert config['pruning']['size'] == 3
    assert config['pruning']['measure'] == 'impurity'


def test_unreadable_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / 'config.json'
    path.write_text('{not json')
    config = load_configuration(path)
    assert config == DEFAULT_CONFIG
    assert any('Falling back' in record.getMessage() for record in caplog.records)


def test_merge_does_not_mutate_defaults():
    merged = merge_configs(DEFAULT_CONFIG, {'decision_tree': {'criterion': 'gini'}})
    merged['pruning']['measure'] = 'misclassification'
    assert DEFAULT_CONFIG['decision_tree']['criterion'] is None
    assert DEFAULT_CONFIG['pruning']['measure'] == 'impurity'


@pytest.mark.parametrize('key_path, bad_value, reset_value', [
    ('decision_tree.criterion', 'variance', None),
    ('decision_tree.min_samples_leaf', 0, 5),
    ('decision_tree.min_samples_split', 1, 2),
    ('decision_tree.max_depth', -2, None),
    ('pruning.measure', 'deviance', 'impurity'),
    ('pruning.size', 0, None),
    ('prediction.unseen_category_policy', 'nearest', 'error'),
    ('cross_validation.n_folds', 1, 10),
    ('logging.level', 'LOUD', 'INFO'),
])
def test_invalid_values_are_reset(key_path, bad_value, reset_value):
    config = merge_configs(DEFAULT_CONFIG, {})
    set_config_value(config, key_path, bad_value)
    assert validate_configuration(config) is False
    assert get_config_value(config, key_path) == reset_value


def test_defaults_are_valid():
    assert validate_configuration(merge_configs(DEFAULT_CONFIG, {})) is True


def test_fractional_leaf_size_is_valid():
    config = merge_configs(DEFAULT_CONFIG, {'decision_tree': {'min_samples_leaf': 0.1}})
    assert validate_configuration(config) is True


def test_dot_path_access():
    config = {}
    assert set_config_value(config, 'a.b.c', 1)
    assert get_config_value(config, 'a.b.c') == 1
    assert get_config_value(config, 'a.x', 'fallback') == 'fallback'


def test_builder_config_from_config():
    config = merge_configs(DEFAULT_CONFIG, {'decision_tree': {'min_samples_split': 100, 'criterion': 'sse'}})
    builder = builder_config_from_config(config)
    assert isinstance(builder, TreeBuilderConfig)
    assert builder.min_samples_split == 100
    assert builder.criterion == 'sse'
    assert builder.min_samples_leaf == 5


def test_save_configuration(tmp_path):
    path = tmp_path / 'nested' / 'config.json'
    assert save_configuration({'logging': {'level': 'DEBUG'}}, path)
    assert json.loads(path.read_text()) == {'logging': {'level': 'DEBUG'}}
