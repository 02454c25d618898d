"""
Protocol Schemas - 上游负载数据模式

会话录制只消费、不产生这些数据：
- TranscriptionSegment: 语音识别结果片段
- ASLSign: 翻译得到的手语词（gloss）

字段名在传输格式中使用 camelCase，Python 侧使用 snake_case。
未知字段原样保留，保证导出/导入无损。
"""

from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


WIRE_CONFIG = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "frozen": True,
}


class TranscriptionSegment(BaseModel):
    """语音识别片段"""

    model_config = {**WIRE_CONFIG, "extra": "allow"}

    id: str = Field(default="", description="片段ID")
    text: str = Field(default="", description="识别文本")
    start_time: float = Field(default=0.0, description="开始时间（毫秒）")
    end_time: float = Field(default=0.0, description="结束时间（毫秒）")
    confidence: float = Field(default=0.0, ge=0, le=1, description="置信度")
    is_final: bool = Field(default=False, description="是否为最终结果")

    @property
    def word_count(self) -> int:
        """按空白切分的词数（空文本为 0）"""
        return len(self.text.split())


class HandShape(BaseModel):
    """手形"""

    model_config = {**WIRE_CONFIG, "extra": "allow"}

    dominant: str = ""
    non_dominant: Optional[str] = None


class Vector3D(BaseModel):
    model_config = WIRE_CONFIG

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class SignLocation(Vector3D):
    """手语位置"""

    model_config = {**WIRE_CONFIG, "extra": "allow"}

    reference: str = Field(default="neutral", description="参考部位")


class SignMovement(BaseModel):
    """手语动作"""

    model_config = {**WIRE_CONFIG, "extra": "allow"}

    type: str = Field(default="static", description="动作类型")
    direction: Optional[Vector3D] = None
    repetitions: Optional[int] = Field(default=None, ge=0)
    speed: str = Field(default="normal", description="动作速度")


class NonManualMarker(BaseModel):
    """非手控标记（表情/头部/身体）"""

    model_config = {**WIRE_CONFIG, "extra": "allow"}

    type: str = "facial"
    expression: str = ""
    intensity: float = Field(default=0.0, ge=0, le=1)


class ASLSign(BaseModel):
    """
    手语词

    gloss 是唯一必填字段，其余动画参数由上游翻译模块提供。
    """

    model_config = {**WIRE_CONFIG, "extra": "allow"}

    gloss: str = Field(..., description="手语词名称")
    duration: float = Field(default=0.0, ge=0, description="持续时间（毫秒）")
    handshape: Optional[HandShape] = None
    location: Optional[SignLocation] = None
    movement: Optional[SignMovement] = None
    non_manual_markers: List[NonManualMarker] = Field(default_factory=list)
