# tests/arch/mos6502/test_state.py
import pytest
from nmos6502.arch.mos6502.state import Mos6502CpuState

# @intent:test_suite フラグレジスタには物理的な6ビットのみが保持されることを検証します。

def test_phantom_bits_are_masked_on_construction():
    state = Mos6502CpuState(p=0xFF)
    assert state.p == 0xCF

def test_pushed_flags_force_break_and_bit5():
    state = Mos6502CpuState(p=0x00)
    assert state.pushed_flags() == 0x30
    assert state.p == 0x00

def test_with_pulled_flags_drops_break_and_bit5():
    state = Mos6502CpuState().with_pulled_flags(0xFF)
    assert state.p == 0xCF

def test_update_flags_sets_and_clears():
    state = Mos6502CpuState(p=0x00).update_flags(n=True, c=True)
    assert state.flag_n and state.flag_c
    state = state.update_flags(n=False)
    assert not state.flag_n and state.flag_c

@pytest.mark.parametrize("name", ["b", "r", "q"])
def test_update_flags_rejects_non_physical_flags(name):
    with pytest.raises(ValueError):
        Mos6502CpuState().update_flags(**{name: True})

def test_replace_returns_new_instance():
    state = Mos6502CpuState(a=1)
    new_state = state.replace(a=2)
    assert state.a == 1
    assert new_state.a == 2

def test_stack_address():
    assert Mos6502CpuState(sp=0xFD).stack_address == 0x01FD
    assert Mos6502CpuState(sp=0x00).stack_address == 0x0100
