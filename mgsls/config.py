"""Machine presets for every firmware generation of the galvanometer SLS controller."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class StepperAxisConfig:
    """Settings of one stepper-driven axis (A, B or C)."""

    step_per_unit: float
    acceleration: float
    speed: float
    pin_step: int
    pin_dir: int
    negate: bool
    timer: int
    pin_enable: int | None = None

    @property
    def acceleration_steps(self) -> int:
        """Acceleration in steps per second squared, truncated to an integer."""
        return int(self.acceleration * self.step_per_unit)

    @property
    def speed_steps(self) -> int:
        """Top speed in steps per second, truncated to an integer."""
        return int(self.speed * self.step_per_unit)


@dataclass(frozen=True, kw_only=True)
class MachineConfig:
    """All compile-time settings of one firmware generation."""

    version: str
    serial_speed: int
    speed_xy: float
    dis_f_theta: float
    dis_xymotor: float
    cycle_interpolation: float
    serial_delay_us: int | None = None
    command_size_max: int | None = None
    gcode_buffer_size: int = 1
    spi_speed: int = 50_000_000
    base_voltage: float = 5.0
    laser_off_power: int | None = None
    laser_on_power: int | None = None
    pin_xy: int | None = None
    pin_x: int | None = None
    pin_y: int | None = None
    pin_laser: int | None = None
    steppers: tuple[StepperAxisConfig, ...] = ()
    stepper_a_distance_max: float | None = None
    da_buffer_size: int = 1
    da_array_size: int | None = None
    rad_mg_max: float | None = None
    mg_max_angle: float | None = None
    x_factor_countervail: float | None = None
    stroke_max: float | None = None
    heating_pin: int | None = None
    heating_cycle: int | None = None
    heating_proportion: float | None = None
    heating_timer: int | None = None
    heater_serial_speed: int | None = None


_V1_1 = MachineConfig(
    version="1.1",
    serial_speed=650000,
    serial_delay_us=12,
    spi_speed=50_000_000,
    base_voltage=5.025,
    pin_x=12,
    pin_y=13,
    speed_xy=2000.0,
    x_factor_countervail=7.1,
    dis_f_theta=330,
    stroke_max=100,
    dis_xymotor=8,
    mg_max_angle=10,
    cycle_interpolation=2000.0,
)

_V1_5 = MachineConfig(
    version="1.5",
    serial_speed=256000,
    serial_delay_us=40,
    command_size_max=96,
    spi_speed=50_000_000,
    base_voltage=4.9,
    laser_off_power=2,
    laser_on_power=255,
    pin_xy=5,
    pin_laser=11,
    speed_xy=500,
    dis_f_theta=330,
    dis_xymotor=8,
    rad_mg_max=0.1745329,
    cycle_interpolation=2000,
    da_buffer_size=2,
)

_V1_6 = MachineConfig(
    version="1.6",
    serial_speed=57600,
    serial_delay_us=200,
    spi_speed=50_000_000,
    base_voltage=4.9,
    laser_off_power=2,
    laser_on_power=255,
    pin_xy=5,
    pin_laser=11,
    steppers=(
        StepperAxisConfig(step_per_unit=13.3333, acceleration=300, speed=200,
                          pin_step=44, pin_dir=42, negate=True, timer=4),
        StepperAxisConfig(step_per_unit=200, acceleration=100, speed=50,
                          pin_step=48, pin_dir=46, negate=False, timer=6),
        StepperAxisConfig(step_per_unit=200, acceleration=100, speed=50,
                          pin_step=52, pin_dir=50, negate=False, timer=6),
    ),
    stepper_a_distance_max=360,
    speed_xy=600,
    dis_f_theta=260,
    dis_xymotor=8,
    rad_mg_max=0.349065,
    cycle_interpolation=1000,
    da_buffer_size=2,
)

_V1_7 = MachineConfig(
    version="1.7",
    serial_speed=250000,
    gcode_buffer_size=3,
    spi_speed=50_000_000,
    base_voltage=5.1,
    laser_off_power=2,
    laser_on_power=255,
    pin_xy=16,
    pin_laser=32,
    steppers=(
        StepperAxisConfig(step_per_unit=13.3333, acceleration=300, speed=200,
                          pin_step=47, pin_dir=45, negate=True, timer=4, pin_enable=24),
        StepperAxisConfig(step_per_unit=200, acceleration=100, speed=50,
                          pin_step=43, pin_dir=41, negate=False, timer=6, pin_enable=0),
        StepperAxisConfig(step_per_unit=200, acceleration=100, speed=50,
                          pin_step=39, pin_dir=37, negate=False, timer=7, pin_enable=36),
    ),
    stepper_a_distance_max=360,
    da_buffer_size=3,
    da_array_size=1000,
    speed_xy=500,
    dis_f_theta=260,
    dis_xymotor=8,
    rad_mg_max=0.349065,
    cycle_interpolation=1500,
    heater_serial_speed=9600,
)

_V1_8 = MachineConfig(
    version="1.8",
    serial_speed=250000,
    gcode_buffer_size=3,
    spi_speed=50_000_000,
    base_voltage=4.8,
    laser_off_power=10,
    laser_on_power=255,
    pin_xy=16,
    pin_laser=32,
    steppers=(
        StepperAxisConfig(step_per_unit=13.3333, acceleration=300, speed=250,
                          pin_step=47, pin_dir=45, negate=False, timer=4, pin_enable=24),
        StepperAxisConfig(step_per_unit=200, acceleration=100, speed=50,
                          pin_step=43, pin_dir=41, negate=True, timer=4, pin_enable=0),
        StepperAxisConfig(step_per_unit=200, acceleration=100, speed=50,
                          pin_step=39, pin_dir=37, negate=True, timer=4, pin_enable=0),
    ),
    stepper_a_distance_max=400,
    da_buffer_size=3,
    da_array_size=6000,
    speed_xy=3000,
    dis_f_theta=260,
    dis_xymotor=8,
    rad_mg_max=0.349065,
    cycle_interpolation=3000,
    heating_pin=35,
    heating_cycle=4_000_000,
    heating_proportion=0.43,
    heating_timer=6,
)

_PRESETS = {cfg.version: cfg for cfg in (_V1_1, _V1_5, _V1_6, _V1_7, _V1_8)}


def preset(version) -> MachineConfig:
    """Return the settings of a firmware generation such as "1.8" or "V1.6"."""
    key = str(version).strip().lstrip("vV")
    try:
        return _PRESETS[key]
    except KeyError:
        known = ", ".join(sorted(_PRESETS))
        raise ValueError(f"unknown firmware version {version!r}; known: {known}") from None