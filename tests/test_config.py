import json

import pytest

from src.config import load_stimulus_config, swap_set_conflicts
from src.registry import ConfigurationError
from src.report import SWAP_SET_CONFLICT, warnings_of_kind


def _write(tmp_path, d):
    p = tmp_path / 'stimuli.json'
    p.write_text(json.dumps(d), encoding='utf-8')
    return str(p)


def test_default_config():
    cfg = load_stimulus_config()
    assert cfg.accepted_extension == '.jpg'
    assert cfg.excluded_extensions == ('.png',)
    assert cfg.dilation_radius == 15
    assert cfg.swap_set_name == 'default'
    assert '002' in cfg.swap_set


def test_radius_override():
    assert load_stimulus_config(dilation_radius=0).dilation_radius == 0
    with pytest.raises(ConfigurationError):
        load_stimulus_config(dilation_radius=-2)


def test_several_swap_sets_need_explicit_choice(tmp_path):
    path = _write(tmp_path, {'swap_sets': {'block_a': ['001', '002'], 'block_b': ['002', '003']}})
    warnings = []
    with pytest.raises(ConfigurationError):
        load_stimulus_config(path, warnings=warnings)

    warnings = []
    cfg = load_stimulus_config(path, swap_set='block_b', warnings=warnings)
    assert cfg.swap_set == frozenset({'002', '003'})
    conflicts = warnings_of_kind(warnings, SWAP_SET_CONFLICT)
    assert [w.stimulus_id for w in conflicts] == ['001', '003']


def test_unknown_swap_set_name(tmp_path):
    path = _write(tmp_path, {'swap_sets': {'only': ['001']}})
    with pytest.raises(ConfigurationError):
        load_stimulus_config(path, swap_set='other')


def test_swap_set_conflicts():
    assert swap_set_conflicts({'a': ['1']}) == {}
    assert swap_set_conflicts({'a': ['1', '2'], 'b': ['2']}) == {'1': ['a']}


@pytest.mark.parametrize('bad', [
    {'accepted_extension': 'jpg'},
    {'accepted_extension': '.png', 'excluded_extensions': ['.png']},
    {'dilation_radius': 2.5},
    {'swap_sets': {'a': '001'}},
    {'swap_sets': {'a': ['001.jpg']}},
    {'swap_sets': ['001']},
])
def test_invalid_config(tmp_path, bad):
    with pytest.raises(ConfigurationError):
        load_stimulus_config(_write(tmp_path, bad))


def test_invalid_json(tmp_path):
    p = tmp_path / 'broken.json'
    p.write_text('{', encoding='utf-8')
    with pytest.raises(ConfigurationError):
        load_stimulus_config(str(p))
