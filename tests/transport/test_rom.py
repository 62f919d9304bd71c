import unittest
from nmos6502.transport.bus import Bus, RAM, ROM, BusAccessType

class TestROM(unittest.TestCase):
    def test_rom_read(self):
        rom = ROM(1024)
        rom.load_data(0, 0xAA)
        self.assertEqual(rom.read(0), 0xAA)

    def test_rom_write_ignored(self):
        rom = ROM(1024)
        rom.load_data(0, 0xAA)

        rom.write(0, 0xBB)

        self.assertEqual(rom.read(0), 0xAA)

    def test_rom_write_out_of_bounds(self):
        rom = ROM(16)
        with self.assertRaises(IndexError):
            rom.write(16, 0x00)

    def test_bus_write_to_rom_is_logged_but_has_no_effect(self):
        bus = Bus()
        bus.register_device(0x0000, 0xEFFF, RAM(0xF000))
        bus.register_device(0xF000, 0xFFFF, ROM(0x1000))
        bus.load(0xF000, 0xEA)

        bus.write(0xF000, 0x00)

        self.assertEqual(bus.read(0xF000), 0xEA)
        log = bus.get_and_clear_activity_log()
        self.assertEqual(log[0].access_type, BusAccessType.WRITE)
        self.assertEqual(log[0].previous_data, 0xEA)

    def test_bus_load_bypasses_rom_protection(self):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, ROM(0x10000))
        bus.load(0xFFFC, [0x00, 0x02])
        self.assertEqual(bus.peek(0xFFFC), 0x00)
        self.assertEqual(bus.peek(0xFFFD), 0x02)

if __name__ == '__main__':
    unittest.main()
