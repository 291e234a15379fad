from typing import Any, Optional, List
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionText(BaseModel):
    """발문. 백엔드는 영어/힌디어 두 언어를 함께 보낸다."""

    english: str = ""
    hindi: str = ""


class Option(BaseModel):
    """보기 하나. key는 문제 내에서 유일하다 (예: "A" ~ "D")."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(
        ...,
        min_length=1,
        description="보기 키 (답안 버퍼에 저장되는 값)"
    )
    english: str = Field(
        "",
        validation_alias=AliasChoices("english", "text"),
        description="보기 본문 (영어)"
    )
    hindi: str = Field(
        "",
        description="보기 본문 (힌디어)"
    )


class Question(BaseModel):
    """
    응시(Attempt)에 포함된 문제 모델
    Pydantic v2 적용, 백엔드의 camelCase 필드명을 그대로 받는다.
    """

    model_config = ConfigDict(populate_by_name=True)

    question_number: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("question_number", "questionNumber"),
        description="문제 번호 (1-based, 답안 버퍼의 고정 키)"
    )
    question_text: QuestionText = Field(
        default_factory=QuestionText,
        validation_alias=AliasChoices("question_text", "questionText"),
        description="발문/문제 내용 (영어 + 힌디어)"
    )
    options: List[Option] = Field(
        ...,
        description="보기 리스트 (객관식 선지)"
    )
    correct_answer: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("correct_answer", "correctAnswer"),
        description="정답. 제출 후에만 존재한다."
    )
    user_answer: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("user_answer", "userAnswer"),
        description="서버에 저장된 사용자 답 (이어 풀기용)"
    )

    @field_validator('options')
    @classmethod
    def validate_options(cls, v: List[Option]) -> List[Option]:
        """
        검증 로직 1: 보기는 최소 2개 이상, 키는 서로 달라야 한다.
        """
        if len(v) < 2:
            raise ValueError("보기(options)는 최소 2개 이상의 항목이 필요합니다.")
        keys = [o.key for o in v]
        if len(set(keys)) != len(keys):
            raise ValueError(f"보기 키가 중복되었습니다: {keys}")
        return v

    @field_validator('question_text', mode='before')
    @classmethod
    def text_from_string(cls, v: Any) -> Any:
        # 단일 언어 문자열이면 영어 본문으로 받는다
        if v is None:
            return {}
        if isinstance(v, str):
            return {"english": v}
        return v

    @field_validator('user_answer', 'correct_answer', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        # 미응답은 키 부재로만 표현한다. 빈 문자열은 None으로 정규화.
        if v == "":
            return None
        return v

    @model_validator(mode='after')
    def validate_answer_in_options(self) -> 'Question':
        """
        검증 로직 2: 정답이 존재하는 경우, 반드시 보기 키 중 하나여야 한다.
        user_answer는 여기서 검증하지 않는다 (로더가 잘못된 값을 걸러낸다).
        """
        if self.correct_answer and not self.has_option(self.correct_answer):
            raise ValueError(
                f"정답('{self.correct_answer}')이 보기 키({self.option_keys})에 존재하지 않습니다."
            )
        return self

    @property
    def option_keys(self) -> List[str]:
        return [o.key for o in self.options]

    def has_option(self, key: str) -> bool:
        return key in self.option_keys
