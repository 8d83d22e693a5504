"""
Lighter REST API Client

Endpoints Used:
    GET /api/v1/funding-rates - Funding rates for all markets

Response Shapes:
    The endpoint has answered with two shapes over time:
        1. A bare list of funding records
        2. An envelope {"code": 200, "funding_rates": [...]}
    Both are decoded explicitly into LighterFundingRecord lists.

Usage:
    async with LighterAPIClient() as client:
        records = await client.get_funding_rates()
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from core.exceptions import MalformedResponseError
from core.http_client import BaseAPIClient

NumberOrString = Union[float, str]


class LighterFundingRecord(BaseModel):
    """One funding record as Lighter sends it. Field spellings vary between deployments."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    market_id: Optional[int] = None
    exchange: Optional[str] = None
    market: Optional[str] = None
    symbol: Optional[str] = None
    rate: Optional[NumberOrString] = None
    funding_rate_camel: Optional[NumberOrString] = Field(None, alias="fundingRate")
    funding_rate: Optional[NumberOrString] = None
    funding_interval_hours_camel: Optional[NumberOrString] = Field(None, alias="fundingIntervalHours")
    funding_interval_hours: Optional[NumberOrString] = None
    timestamp: Optional[NumberOrString] = None
    collected_at: Optional[NumberOrString] = None

    @property
    def instrument(self) -> Optional[str]:
        return self.market or self.symbol

    @property
    def raw_rate(self) -> Optional[NumberOrString]:
        for value in (self.rate, self.funding_rate_camel, self.funding_rate):
            if value is not None:
                return value
        return None

    @property
    def raw_interval_hours(self) -> Optional[NumberOrString]:
        if self.funding_interval_hours_camel is not None:
            return self.funding_interval_hours_camel
        return self.funding_interval_hours

    @property
    def raw_collected_at(self) -> Optional[NumberOrString]:
        return self.timestamp if self.timestamp is not None else self.collected_at


class LighterFundingEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[int] = None
    funding_rates: List[LighterFundingRecord] = Field(default_factory=list)


LighterFundingResponse = Union[List[LighterFundingRecord], LighterFundingEnvelope]

_response_adapter = TypeAdapter(LighterFundingResponse)


def decode_funding_response(data) -> List[LighterFundingRecord]:
    """
    Decode either response shape into a list of records.

    Raises:
        MalformedResponseError: If the payload matches neither shape
    """
    try:
        decoded = _response_adapter.validate_python(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Lighter funding-rates payload not recognised: {e}") from e

    if isinstance(decoded, LighterFundingEnvelope):
        return decoded.funding_rates
    return decoded


class LighterAPIClient(BaseAPIClient):
    """Async HTTP client for the Lighter public REST API."""

    exchange = "lighter"
    DEFAULT_BASE_URL = "https://mainnet.zklighter.elliot.ai"

    async def get_funding_rates(self) -> List[LighterFundingRecord]:
        data = await self._get("/api/v1/funding-rates")
        return decode_funding_response(data)
