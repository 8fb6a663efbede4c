"""
Configuration management for the synthesis pipeline.

Centralized configuration with:
- Environment variable support (a local .env is honoured)
- Validation
- One cached instance per process
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict

from dotenv import load_dotenv

from deck_synthesis.services.exceptions import InvalidConfigError

load_dotenv()


@dataclass
class CanvasConfig:
    """Export canvas geometry, in inches (16:9)"""
    width: float = field(default_factory=lambda: float(os.getenv('DECK_CANVAS_WIDTH', '10.0')))
    height: float = field(default_factory=lambda: float(os.getenv('DECK_CANVAS_HEIGHT', '5.625')))
    safe_margin: float = field(default_factory=lambda: float(os.getenv('DECK_SAFE_MARGIN', '0.2')))
    min_element_size: float = field(default_factory=lambda: float(os.getenv('DECK_MIN_ELEMENT_SIZE', '0.1')))

    @property
    def max_x(self) -> float:
        return self.width - self.safe_margin

    @property
    def max_y(self) -> float:
        return self.height - self.safe_margin


@dataclass
class TypographyConfig:
    """Font sizing configuration"""
    # Characters that comfortably fit per square inch
    capacity_factor: float = field(default_factory=lambda: float(os.getenv('DECK_TEXT_CAPACITY_FACTOR', '8')))
    default_font_size: float = field(default_factory=lambda: float(os.getenv('DECK_DEFAULT_FONT_SIZE', '18')))
    font_stack: str = field(default_factory=lambda: os.getenv('DECK_FONT_STACK', 'Montserrat, Segoe UI, Arial'))


@dataclass
class ValidationConfig:
    """Bounds used to reject physically impossible designs"""
    min_x: float = -1.0
    max_x: float = 11.0
    min_y: float = -1.0
    max_y: float = 7.0


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = field(default_factory=lambda: os.getenv('LOG_LEVEL', 'INFO'))


@dataclass
class Config:
    """Master configuration"""
    canvas: CanvasConfig = field(default_factory=CanvasConfig)
    typography: TypographyConfig = field(default_factory=TypographyConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    logging: LogConfig = field(default_factory=LogConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'canvas': {
                'width': self.canvas.width,
                'height': self.canvas.height,
                'safe_margin': self.canvas.safe_margin,
                'min_element_size': self.canvas.min_element_size
            },
            'typography': {
                'capacity_factor': self.typography.capacity_factor,
                'default_font_size': self.typography.default_font_size,
                'font_stack': self.typography.font_stack
            },
            'validation': {
                'x_range': [self.validation.min_x, self.validation.max_x],
                'y_range': [self.validation.min_y, self.validation.max_y]
            },
            'logging': {
                'level': self.logging.level
            }
        }

    def validate(self) -> None:
        """Validate configuration values"""
        if self.canvas.width <= 0 or self.canvas.height <= 0:
            raise InvalidConfigError(
                f"Canvas must have positive size, got {self.canvas.width}x{self.canvas.height}"
            )

        if self.canvas.safe_margin < 0:
            raise InvalidConfigError(f"safe_margin must not be negative, got {self.canvas.safe_margin}")

        if 2 * self.canvas.safe_margin + self.canvas.min_element_size > min(self.canvas.width, self.canvas.height):
            raise InvalidConfigError(
                "safe_margin leaves no room for elements",
                context={'safe_margin': self.canvas.safe_margin, 'canvas': [self.canvas.width, self.canvas.height]}
            )

        if self.canvas.min_element_size <= 0:
            raise InvalidConfigError(f"min_element_size must be positive, got {self.canvas.min_element_size}")

        if self.typography.capacity_factor <= 0:
            raise InvalidConfigError(f"capacity_factor must be positive, got {self.typography.capacity_factor}")

        if self.typography.default_font_size <= 0:
            raise InvalidConfigError(f"default_font_size must be positive, got {self.typography.default_font_size}")

        if self.validation.min_x >= self.validation.max_x or self.validation.min_y >= self.validation.max_y:
            raise InvalidConfigError("Validation ranges must be non-empty")


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get singleton configuration instance"""
    config = Config()
    config.validate()
    return config


def get_config_dict() -> Dict[str, Any]:
    """Get configuration as dictionary"""
    return get_config().to_dict()


def get_canvas_config() -> CanvasConfig:
    """Get canvas configuration"""
    return get_config().canvas


def get_typography_config() -> TypographyConfig:
    """Get typography configuration"""
    return get_config().typography


def get_validation_config() -> ValidationConfig:
    """Get validation configuration"""
    return get_config().validation
