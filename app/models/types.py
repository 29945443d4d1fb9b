from typing import NewType

CityId = NewType('CityId', str)
CountryCode = NewType('CountryCode', str)
"""Two-letter ISO 3166-1 alpha-2 territory code."""
CallerId = NewType('CallerId', str)
"""Identity established by the authenticating gateway."""
