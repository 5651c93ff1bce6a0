"""
Query Composer - builds the grounded search instruction for MFDS updates.
"""
import json
from datetime import date, timedelta
from typing import Optional

AGENCY_NAME = "대한민국 식품의약품안전처(MFDS, 식약처)"
AGENCY_DOMAIN = "mfds.go.kr"
DEFAULT_LOOKBACK_DAYS = 90

EXAMPLE_RECORD = {
    "title": "...",
    "date": "YYYY-MM-DD",
    "category": "법령/고시",
    "url": "https://...",
    "summary": "...",
}


def lookback_start(today: date, days: int = DEFAULT_LOOKBACK_DAYS) -> date:
    """First day of the search window."""
    return today - timedelta(days=days)


def format_locale_date(d: date) -> str:
    """Render a date the way the ko-KR locale does (e.g. 2025. 6. 3.)."""
    return f"{d.year}. {d.month}. {d.day}."


def _output_contract(structured: bool) -> str:
    if structured:
        return (
            "결과는 제공된 응답 스키마(title, date, category, url, summary 필드를 가진 객체 배열)를 "
            "정확히 따르세요. 날짜 최신순(내림차순)으로 정렬하세요."
        )
    example = json.dumps([EXAMPLE_RECORD], ensure_ascii=False, separators=(",", ":"))
    return (
        "결과는 아래 형식의 순수 JSON 배열로만 반환하세요. 날짜 최신순(내림차순)으로 정렬하세요.\n"
        "설명 문장이나 마크다운 코드블록 없이 JSON 배열만 출력하세요:\n"
        f"{example}"
    )


def build_update_prompt(
    today: Optional[date] = None,
    structured: bool = False,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> str:
    """
    Compose the retrieval instruction for the generation backend.

    Args:
        today: Reference date; defaults to the local current date
        structured: True when the backend will receive an output schema
        lookback_days: Size of the search window in days

    Returns:
        Instruction text. Identical inputs always give identical output.
    """
    today = today or date.today()
    start = lookback_start(today, lookback_days)

    return f"""오늘 날짜는 {format_locale_date(today)}입니다.
{AGENCY_NAME} 공식 홈페이지({AGENCY_DOMAIN})의 '법령/자료' 게시판만 검색하여 최신 정보를 추출하세요.

검색 기간: {format_locale_date(start)} 부터 {format_locale_date(today)}까지 (최근 {lookback_days}일 이내의 정보만)

다음 두 가지 카테고리별로 최신 항목을 찾으세요:
1. 법령/고시: 법, 시행령, 시행규칙 및 고시 제정·개정 (일반 식품 관련 내용만 포함. 축산물, 수산물, 의약품, 의료기기, 화장품 관련 내용은 제외)
2. 입법/행정예고: 일반 식품과 관련된 입법예고 및 행정예고 (축산물, 수산물, 의약품, 의료기기, 화장품 관련 내용은 제외)

{AGENCY_DOMAIN}의 공식 게시물만 사용하고, 블로그·언론 재인용·개인 의견 등 비공식 출처는 제외하세요.
각 항목에는 제목(title), 게시일(date, YYYY-MM-DD), 카테고리(category, "법령/고시" 또는 "입법/행정예고"), 해당 게시물 URL(url), 핵심 내용 1~2문장 요약(summary)을 포함하세요.

{_output_contract(structured)}
"""
