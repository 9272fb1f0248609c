"""Control panel and sensor inputs."""

from .input_sample import InputSample, is_asserted, ASSERT_THRESHOLD, FULL_SCALE_V
from .control_panel import (
    InputSource,
    PanelButton,
    PanelConfig,
    MockControlPanel,
    SerialControlPanel,
)
