from fractions import Fraction
import pickle

import pytest

from starpp import InvalidModifierCombination, Mod, ModifierSet
from starpp.mod import MapAttributes, ar_to_ms, ms_to_ar


def test_order_independent():
    assert ModifierSet('HDDT') == ModifierSet('DTHD')
    assert hash(ModifierSet('HDDT')) == hash(ModifierSet('DTHD'))
    assert ModifierSet(['hidden', 'DT']) == ModifierSet('HDDT')
    assert ModifierSet([Mod.double_time, Mod.hidden]) == ModifierSet('HDDT')
    assert ModifierSet(Mod.hidden | Mod.double_time) == ModifierSet('HDDT')


def test_parse_separators():
    assert ModifierSet('+HD,DT') == ModifierSet('hd dt')
    assert ModifierSet('NM') == ModifierSet()
    assert ModifierSet('') == ModifierSet(None)


def test_nightcore_implies_double_time():
    mods = ModifierSet('NC')
    assert Mod.double_time in mods
    assert Mod.nightcore in mods
    assert mods.clock_rate == 1.5
    assert mods.acronyms() == 'NC'
    assert ModifierSet('NCDT') == mods


def test_perfect_implies_sudden_death():
    mods = ModifierSet('PF')
    assert Mod.sudden_death in mods
    assert mods.acronyms() == 'PF'


@pytest.mark.parametrize('mods', [
    'EZHR',
    'DTHT',
    'NCHT',
    'HRMR',
    'RXAP',
    'NFSD',
    'NFPF',
    'ATRX',
    '4K7K',
])
def test_conflicts(mods):
    with pytest.raises(InvalidModifierCombination) as e:
        ModifierSet(mods)

    assert len(e.value.conflicts) == 2


@pytest.mark.parametrize(
    'mods',
    ['ZZ', 'HDD', -1, 1 << 31, [12.5], [object()], True],
)
def test_invalid_input(mods):
    with pytest.raises(InvalidModifierCombination):
        ModifierSet(mods)


def test_invalid_modifier_combination_is_a_value_error():
    with pytest.raises(ValueError):
        ModifierSet('EZHR')


def test_passed_objects():
    mods = ModifierSet('HR', passed_objects=10)
    assert mods.passed_objects == 10
    assert mods != ModifierSet('HR')
    assert str(mods) == 'HR@10'

    with pytest.raises(InvalidModifierCombination):
        ModifierSet('HR', passed_objects=-1)


@pytest.mark.parametrize('passed_objects', [2.7, 3.0, '3', True])
def test_passed_objects_must_be_an_int(passed_objects):
    with pytest.raises(InvalidModifierCombination):
        ModifierSet('HR', passed_objects=passed_objects)


def test_difficulty_key():
    nightcore = ModifierSet('NC')
    assert ModifierSet('HDDT').difficulty_key == nightcore.difficulty_key
    assert ModifierSet('HD').difficulty_key == ModifierSet().difficulty_key
    assert ModifierSet('HR').difficulty_key != ModifierSet().difficulty_key
    assert ModifierSet('FL').difficulty_key != ModifierSet().difficulty_key

    assert ModifierSet('HDHR').difficulty_mods() == ModifierSet('HR')
    assert ModifierSet('HDHR').is_compatible(ModifierSet('HRSO'))
    assert not ModifierSet('HR').is_compatible(ModifierSet('HRDT'))


def test_clock_rate():
    assert ModifierSet().clock_rate == 1.0
    assert ModifierSet('DT').clock_rate == 1.5
    assert ModifierSet('HT').clock_rate == 0.75

    assert ModifierSet('DT').time_coefficient == Fraction(2, 3)
    assert ModifierSet('HT').time_coefficient == Fraction(4, 3)
    assert ModifierSet('HR').time_coefficient == 1


def test_immutable():
    mods = ModifierSet('HD')
    with pytest.raises(AttributeError):
        mods._mask = 0


def test_pickle():
    mods = ModifierSet('HDDT', passed_objects=3)
    assert pickle.loads(pickle.dumps(mods)) == mods


def test_str_and_repr():
    assert str(ModifierSet('DTHD')) == 'HDDT'
    assert str(ModifierSet()) == 'NM'
    assert repr(ModifierSet('HR')) == "ModifierSet('HR')"


def test_ar_ms_inverse():
    for ar in (0, 3, 5, 8, 9.5, 10):
        assert ms_to_ar(ar_to_ms(ar)) == pytest.approx(ar)


def test_map_attributes_no_mods():
    attributes = MapAttributes.from_settings(9, 8, 4, 6, ModifierSet())
    assert attributes == (9, 8, 4, 6, 1.0)
    assert attributes.preempt == pytest.approx(600)
    assert attributes.great_hit_window == pytest.approx(32)


def test_map_attributes_hard_rock():
    attributes = MapAttributes.from_settings(9, 8, 4, 6, ModifierSet('HR'))
    assert attributes.ar == pytest.approx(10)
    assert attributes.od == 10
    assert attributes.cs == pytest.approx(5.2)
    assert attributes.hp == pytest.approx(8.4)


def test_map_attributes_easy():
    attributes = MapAttributes.from_settings(9, 8, 4, 6, ModifierSet('EZ'))
    assert attributes.ar == pytest.approx(4.5)
    assert attributes.od == 4
    assert attributes.cs == 2
    assert attributes.hp == 3


def test_map_attributes_double_time():
    attributes = MapAttributes.from_settings(9, 8, 4, 6, ModifierSet('DT'))
    # 600ms of preempt becomes 400ms
    assert attributes.preempt == pytest.approx(400)
    assert attributes.ar == pytest.approx(5 + 800 / 150)
    assert attributes.od == 8
    assert attributes.great_hit_window == pytest.approx(32 / 1.5)
    assert attributes.effective_od == pytest.approx((32 / 1.5 - 80) / -6)


def test_bit_enum_helpers():
    assert Mod.combine() == 0
    assert Mod.combine(Mod.hidden, Mod.hard_rock) == 24
    assert Mod.flags(24) == [Mod.hidden, Mod.hard_rock]

    # aliases are reported under their first name
    assert Mod.flags(Mod.auto_pilot) == [Mod.auto_pilot]
    assert Mod.flags(Mod.cinema) == [Mod.cinema]

    assert Mod.unknown_bits(Mod.mirror) == 0
    assert Mod.unknown_bits(1 << 31 | Mod.hidden) == 1 << 31
