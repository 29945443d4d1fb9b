import logging

from app.config import COUNTRY_CODE_FALLBACK
from app.lib.exceptions_context import raise_for
from app.models.types import CountryCode

_COUNTRY_CODES: dict[str, str] = {
    'Afghanistan': 'AF',
    'Albania': 'AL',
    'Andorra': 'AD',
    'Argentina': 'AR',
    'Armenia': 'AM',
    'Australia': 'AU',
    'Austria': 'AT',
    'Azerbaijan': 'AZ',
    'Bahrain': 'BH',
    'Bangladesh': 'BD',
    'Belarus': 'BY',
    'Belgium': 'BE',
    'Bolivia': 'BO',
    'Bosnia and Herzegovina': 'BA',
    'Brazil': 'BR',
    'Bulgaria': 'BG',
    'Cambodia': 'KH',
    'Canada': 'CA',
    'Chile': 'CL',
    'China': 'CN',
    'Colombia': 'CO',
    'Costa Rica': 'CR',
    'Croatia': 'HR',
    'Cyprus': 'CY',
    'Czech Republic': 'CZ',
    'Czechia': 'CZ',
    'Denmark': 'DK',
    'Dominican Republic': 'DO',
    'Ecuador': 'EC',
    'Egypt': 'EG',
    'El Salvador': 'SV',
    'Estonia': 'EE',
    'Ethiopia': 'ET',
    'Finland': 'FI',
    'France': 'FR',
    'Georgia': 'GE',
    'Germany': 'DE',
    'Ghana': 'GH',
    'Greece': 'GR',
    'Guatemala': 'GT',
    'Honduras': 'HN',
    'Hungary': 'HU',
    'Iceland': 'IS',
    'India': 'IN',
    'Indonesia': 'ID',
    'Iran': 'IR',
    'Iraq': 'IQ',
    'Ireland': 'IE',
    'Israel': 'IL',
    'Italy': 'IT',
    'Japan': 'JP',
    'Jordan': 'JO',
    'Kazakhstan': 'KZ',
    'Kenya': 'KE',
    'Kuwait': 'KW',
    'Laos': 'LA',
    'Latvia': 'LV',
    'Lebanon': 'LB',
    'Liechtenstein': 'LI',
    'Lithuania': 'LT',
    'Luxembourg': 'LU',
    'Malaysia': 'MY',
    'Malta': 'MT',
    'Mexico': 'MX',
    'Moldova': 'MD',
    'Monaco': 'MC',
    'Mongolia': 'MN',
    'Montenegro': 'ME',
    'Morocco': 'MA',
    'Myanmar': 'MM',
    'Nepal': 'NP',
    'Netherlands': 'NL',
    'New Zealand': 'NZ',
    'Nicaragua': 'NI',
    'Nigeria': 'NG',
    'North Macedonia': 'MK',
    'Norway': 'NO',
    'Oman': 'OM',
    'Pakistan': 'PK',
    'Panama': 'PA',
    'Paraguay': 'PY',
    'Peru': 'PE',
    'Philippines': 'PH',
    'Poland': 'PL',
    'Portugal': 'PT',
    'Qatar': 'QA',
    'Romania': 'RO',
    'Russia': 'RU',
    'San Marino': 'SM',
    'Saudi Arabia': 'SA',
    'Serbia': 'RS',
    'Singapore': 'SG',
    'Slovakia': 'SK',
    'Slovenia': 'SI',
    'South Africa': 'ZA',
    'South Korea': 'KR',
    'Spain': 'ES',
    'Sri Lanka': 'LK',
    'Sweden': 'SE',
    'Switzerland': 'CH',
    'Thailand': 'TH',
    'Turkey': 'TR',
    'Ukraine': 'UA',
    'United Arab Emirates': 'AE',
    'United Kingdom': 'GB',
    'United States': 'US',
    'Uruguay': 'UY',
    'Uzbekistan': 'UZ',
    'Vatican City': 'VA',
    'Venezuela': 'VE',
    'Vietnam': 'VN',
}

_COUNTRY_CODES_CASEFOLD = {name.casefold(): code for name, code in _COUNTRY_CODES.items()}


def resolve_country_code(country: str) -> CountryCode:
    """
    Resolve a country name into its ISO 3166-1 alpha-2 code.

    The exact name is tried first, then a case-insensitive match.
    Unknown names fall back to COUNTRY_CODE_FALLBACK when configured,
    otherwise an unknown country error is raised.

    >>> resolve_country_code('united states')
    'US'
    """
    code = _COUNTRY_CODES.get(country)
    if code is not None:
        return CountryCode(code)

    code = _COUNTRY_CODES_CASEFOLD.get(country.strip().casefold())
    if code is not None:
        return CountryCode(code)

    if COUNTRY_CODE_FALLBACK:
        logging.warning('Unknown country %r, using fallback %r', country, COUNTRY_CODE_FALLBACK)
        return CountryCode(COUNTRY_CODE_FALLBACK)

    raise_for.unknown_country(country)


def normalize_country_code(code: str) -> CountryCode:
    """
    Validate an explicit territory code and return it upper-cased.

    >>> normalize_country_code(' ar ')
    'AR'
    """
    code = code.strip().upper()
    if len(code) != 2 or not (code.isascii() and code.isalpha()):
        raise_for.boundary_invalid_request(f'Invalid country code {code!r}')
    return CountryCode(code)
