"""Common types and data structures for xwayback"""

from dataclasses import dataclass
from enum import Enum, IntEnum


class Subpixel(IntEnum):
    """wl_output subpixel geometry"""
    UNKNOWN = 0
    NONE = 1
    HORIZONTAL_RGB = 2
    HORIZONTAL_BGR = 3
    VERTICAL_RGB = 4
    VERTICAL_BGR = 5


class Transform(IntEnum):
    """wl_output transform"""
    NORMAL = 0
    ROTATE_90 = 1
    ROTATE_180 = 2
    ROTATE_270 = 3
    FLIPPED = 4
    FLIPPED_90 = 5
    FLIPPED_180 = 6
    FLIPPED_270 = 7


class DisplayState(Enum):
    """Bootstrap progress of a single output"""
    DISCOVERED = "discovered"          # wl_output bound from the registry
    GEOMETRY_KNOWN = "geometry_known"  # wl_output.done received
    EXTENDED_KNOWN = "extended_known"  # zxdg_output_v1.done received
    READY = "ready"                    # both barriers crossed


@dataclass(frozen=True)
class DisplayDescriptor:
    """Output advertised by the compositor"""
    registry_name: int
    name: str = ""
    description: str = ""
    make: str = ""
    model: str = ""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    physical_width: int = 0
    physical_height: int = 0
    subpixel: Subpixel = Subpixel.UNKNOWN
    transform: Transform = Transform.NORMAL
    scale: int = 1
    refresh: float = 0.0
    state: DisplayState = DisplayState.DISCOVERED

    def label_matches(self, label: str) -> bool:
        """Check if label equals the vendor make or the make/model pair"""
        return label == self.make or label == f"{self.make} {self.model}"

    def geometry_format(self) -> str:
        """Logical size as the "<width>x<height>" token"""
        return f"{self.width}x{self.height}"
