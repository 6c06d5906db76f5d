"""
models/currency.py: ISO 4217 currency table and display formatting.

The minor-unit `decimals` value is what the debt simplifier rounds settlement
amounts to (2 for most currencies, 0 for zero-decimal ones such as JPY, 3 for
the Gulf dinars). Formatting helpers mirror what the client shows next to
amounts; they are used by payment descriptions and the /currencies endpoint.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple


DEFAULT_CURRENCY = "USD"


class Currency(NamedTuple):
    code: str
    name: str
    symbol: str
    decimals: int


# Most common currencies first (selector order), then alphabetical by code.
SUPPORTED_CURRENCIES: tuple[Currency, ...] = (
    Currency("USD", "US Dollar", "$", 2),
    Currency("EUR", "Euro", "€", 2),
    Currency("GBP", "British Pound", "£", 2),
    Currency("JPY", "Japanese Yen", "¥", 0),
    Currency("CNY", "Chinese Yuan", "¥", 2),
    Currency("INR", "Indian Rupee", "₹", 2),
    Currency("CAD", "Canadian Dollar", "C$", 2),
    Currency("AUD", "Australian Dollar", "A$", 2),
    Currency("CHF", "Swiss Franc", "CHF", 2),
    Currency("SGD", "Singapore Dollar", "S$", 2),
    Currency("HKD", "Hong Kong Dollar", "HK$", 2),
    Currency("NZD", "New Zealand Dollar", "NZ$", 2),
    Currency("KRW", "South Korean Won", "₩", 0),
    Currency("MXN", "Mexican Peso", "$", 2),
    Currency("BRL", "Brazilian Real", "R$", 2),
    Currency("ZAR", "South African Rand", "R", 2),
    Currency("RUB", "Russian Ruble", "₽", 2),
    Currency("TRY", "Turkish Lira", "₺", 2),
    Currency("SEK", "Swedish Krona", "kr", 2),
    Currency("NOK", "Norwegian Krone", "kr", 2),
    Currency("DKK", "Danish Krone", "kr", 2),
    Currency("PLN", "Polish Zloty", "zł", 2),
    Currency("THB", "Thai Baht", "฿", 2),
    Currency("MYR", "Malaysian Ringgit", "RM", 2),
    Currency("IDR", "Indonesian Rupiah", "Rp", 0),
    Currency("PHP", "Philippine Peso", "₱", 2),
    Currency("VND", "Vietnamese Dong", "₫", 0),
    Currency("CZK", "Czech Koruna", "Kč", 2),
    Currency("HUF", "Hungarian Forint", "Ft", 2),

    Currency("AED", "UAE Dirham", "د.إ", 2),
    Currency("AFN", "Afghan Afghani", "؋", 2),
    Currency("ALL", "Albanian Lek", "L", 2),
    Currency("AMD", "Armenian Dram", "֏", 2),
    Currency("ANG", "Netherlands Antillean Guilder", "ƒ", 2),
    Currency("AOA", "Angolan Kwanza", "Kz", 2),
    Currency("ARS", "Argentine Peso", "$", 2),
    Currency("AWG", "Aruban Florin", "ƒ", 2),
    Currency("AZN", "Azerbaijani Manat", "₼", 2),
    Currency("BAM", "Bosnia-Herzegovina Convertible Mark", "КМ", 2),
    Currency("BBD", "Barbadian Dollar", "$", 2),
    Currency("BDT", "Bangladeshi Taka", "৳", 2),
    Currency("BGN", "Bulgarian Lev", "лв", 2),
    Currency("BHD", "Bahraini Dinar", ".د.ب", 3),
    Currency("BIF", "Burundian Franc", "Fr", 0),
    Currency("BMD", "Bermudian Dollar", "$", 2),
    Currency("BND", "Brunei Dollar", "$", 2),
    Currency("BOB", "Bolivian Boliviano", "Bs.", 2),
    Currency("BSD", "Bahamian Dollar", "$", 2),
    Currency("BTN", "Bhutanese Ngultrum", "Nu.", 2),
    Currency("BWP", "Botswana Pula", "P", 2),
    Currency("BYN", "Belarusian Ruble", "Br", 2),
    Currency("BZD", "Belize Dollar", "$", 2),
    Currency("CDF", "Congolese Franc", "Fr", 2),
    Currency("CLP", "Chilean Peso", "$", 0),
    Currency("COP", "Colombian Peso", "$", 2),
    Currency("CRC", "Costa Rican Colón", "₡", 2),
    Currency("CUP", "Cuban Peso", "$", 2),
    Currency("CVE", "Cape Verdean Escudo", "$", 2),
    Currency("DJF", "Djiboutian Franc", "Fr", 0),
    Currency("DOP", "Dominican Peso", "$", 2),
    Currency("DZD", "Algerian Dinar", "د.ج", 2),
    Currency("EGP", "Egyptian Pound", "£", 2),
    Currency("ERN", "Eritrean Nakfa", "Nfk", 2),
    Currency("ETB", "Ethiopian Birr", "Br", 2),
    Currency("FJD", "Fijian Dollar", "$", 2),
    Currency("FKP", "Falkland Islands Pound", "£", 2),
    Currency("GEL", "Georgian Lari", "₾", 2),
    Currency("GHS", "Ghanaian Cedi", "₵", 2),
    Currency("GIP", "Gibraltar Pound", "£", 2),
    Currency("GMD", "Gambian Dalasi", "D", 2),
    Currency("GNF", "Guinean Franc", "Fr", 0),
    Currency("GTQ", "Guatemalan Quetzal", "Q", 2),
    Currency("GYD", "Guyanese Dollar", "$", 2),
    Currency("HNL", "Honduran Lempira", "L", 2),
    Currency("HRK", "Croatian Kuna", "kn", 2),
    Currency("HTG", "Haitian Gourde", "G", 2),
    Currency("ILS", "Israeli New Shekel", "₪", 2),
    Currency("IQD", "Iraqi Dinar", "ع.د", 3),
    Currency("IRR", "Iranian Rial", "﷼", 2),
    Currency("ISK", "Icelandic Króna", "kr", 0),
    Currency("JMD", "Jamaican Dollar", "$", 2),
    Currency("JOD", "Jordanian Dinar", "د.ا", 3),
    Currency("KES", "Kenyan Shilling", "Sh", 2),
    Currency("KGS", "Kyrgystani Som", "с", 2),
    Currency("KHR", "Cambodian Riel", "៛", 2),
    Currency("KMF", "Comorian Franc", "Fr", 0),
    Currency("KPW", "North Korean Won", "₩", 2),
    Currency("KWD", "Kuwaiti Dinar", "د.ك", 3),
    Currency("KYD", "Cayman Islands Dollar", "$", 2),
    Currency("KZT", "Kazakhstani Tenge", "₸", 2),
    Currency("LAK", "Laotian Kip", "₭", 2),
    Currency("LBP", "Lebanese Pound", "£", 2),
    Currency("LKR", "Sri Lankan Rupee", "Rs", 2),
    Currency("LRD", "Liberian Dollar", "$", 2),
    Currency("LSL", "Lesotho Loti", "L", 2),
    Currency("LYD", "Libyan Dinar", "ل.د", 3),
    Currency("MAD", "Moroccan Dirham", "د.م.", 2),
    Currency("MDL", "Moldovan Leu", "L", 2),
    Currency("MGA", "Malagasy Ariary", "Ar", 2),
    Currency("MKD", "Macedonian Denar", "ден", 2),
    Currency("MMK", "Myanma Kyat", "K", 2),
    Currency("MNT", "Mongolian Tugrik", "₮", 2),
    Currency("MOP", "Macanese Pataca", "P", 2),
    Currency("MRU", "Mauritanian Ouguiya", "UM", 2),
    Currency("MUR", "Mauritian Rupee", "₨", 2),
    Currency("MVR", "Maldivian Rufiyaa", "Rf", 2),
    Currency("MWK", "Malawian Kwacha", "MK", 2),
    Currency("MZN", "Mozambican Metical", "MT", 2),
    Currency("NAD", "Namibian Dollar", "$", 2),
    Currency("NGN", "Nigerian Naira", "₦", 2),
    Currency("NIO", "Nicaraguan Córdoba", "C$", 2),
    Currency("NPR", "Nepalese Rupee", "₨", 2),
    Currency("OMR", "Omani Rial", "ر.ع.", 3),
    Currency("PAB", "Panamanian Balboa", "B/.", 2),
    Currency("PEN", "Peruvian Sol", "S/", 2),
    Currency("PGK", "Papua New Guinean Kina", "K", 2),
    Currency("PKR", "Pakistani Rupee", "₨", 2),
    Currency("PYG", "Paraguayan Guaraní", "₲", 0),
    Currency("QAR", "Qatari Riyal", "ر.ق", 2),
    Currency("RON", "Romanian Leu", "lei", 2),
    Currency("RSD", "Serbian Dinar", "дин", 2),
    Currency("RWF", "Rwandan Franc", "Fr", 0),
    Currency("SAR", "Saudi Riyal", "ر.س", 2),
    Currency("SBD", "Solomon Islands Dollar", "$", 2),
    Currency("SCR", "Seychellois Rupee", "₨", 2),
    Currency("SDG", "Sudanese Pound", "ج.س.", 2),
    Currency("SHP", "Saint Helena Pound", "£", 2),
    Currency("SLE", "Sierra Leonean Leone", "Le", 2),
    Currency("SLL", "Sierra Leonean Leone (Old)", "Le", 2),
    Currency("SOS", "Somali Shilling", "Sh", 2),
    Currency("SRD", "Surinamese Dollar", "$", 2),
    Currency("SSP", "South Sudanese Pound", "£", 2),
    Currency("STN", "São Tomé and Príncipe Dobra", "Db", 2),
    Currency("SYP", "Syrian Pound", "£", 2),
    Currency("SZL", "Swazi Lilangeni", "L", 2),
    Currency("TJS", "Tajikistani Somoni", "ЅМ", 2),
    Currency("TMT", "Turkmenistani Manat", "m", 2),
    Currency("TND", "Tunisian Dinar", "د.ت", 3),
    Currency("TOP", "Tongan Paʻanga", "T$", 2),
    Currency("TTD", "Trinidad and Tobago Dollar", "$", 2),
    Currency("TWD", "New Taiwan Dollar", "NT$", 2),
    Currency("TZS", "Tanzanian Shilling", "Sh", 2),
    Currency("UAH", "Ukrainian Hryvnia", "₴", 2),
    Currency("UGX", "Ugandan Shilling", "Sh", 0),
    Currency("UYU", "Uruguayan Peso", "$", 2),
    Currency("UZS", "Uzbekistani Som", "so'm", 2),
    Currency("VED", "Venezuelan Bolívar Soberano", "Bs.S", 2),
    Currency("VES", "Venezuelan Bolívar", "Bs.", 2),
    Currency("WST", "Samoan Tala", "T", 2),
    Currency("XAF", "Central African CFA Franc", "Fr", 0),
    Currency("XCD", "East Caribbean Dollar", "$", 2),
    Currency("XOF", "West African CFA Franc", "Fr", 0),
    Currency("XPF", "CFP Franc", "Fr", 0),
    Currency("YER", "Yemeni Rial", "﷼", 2),
    Currency("ZMW", "Zambian Kwacha", "ZK", 2),
    Currency("ZWL", "Zimbabwean Dollar", "$", 2),
)

_BY_CODE: dict[str, Currency] = {c.code: c for c in SUPPORTED_CURRENCIES}

# Currencies written with the symbol after the amount ("12.50 €").
# Everything else is written with the symbol first ("$12.50").
_SUFFIX_SYMBOL_CODES = frozenset({
    "EUR", "GBP", "CHF", "SEK", "NOK", "DKK", "PLN", "CZK", "HUF", "ZAR",
    "MYR", "RUB", "TRY", "RON", "HRK", "BAM",
})


def get_currency(code: str) -> Currency | None:
    return _BY_CODE.get(code)


def is_valid_currency(code: str) -> bool:
    return code in _BY_CODE


def currency_decimals(code: str) -> int:
    """Minor-unit decimal places for `code`; unknown codes fall back to 2."""
    currency = _BY_CODE.get(code)
    return currency.decimals if currency else 2


def minor_unit(code: str) -> Decimal:
    """Smallest representable amount for `code`, e.g. Decimal("0.01") for USD, Decimal("1") for JPY."""
    return Decimal(1).scaleb(-currency_decimals(code))


def quantize_amount(amount: Decimal, code: str) -> Decimal:
    """Rounds `amount` half-up to the minor unit of `code`. Never returns -0."""
    rounded = amount.quantize(minor_unit(code), rounding=ROUND_HALF_UP)
    return rounded.copy_abs() if rounded.is_zero() else rounded


def format_amount(amount: Decimal, code: str) -> str:
    """Amount without symbol, at the currency's precision (for inputs and exports)."""
    return f"{quantize_amount(Decimal(amount), code):f}"


def format_currency(amount: Decimal, code: str) -> str:
    """
    Amount with symbol at the currency's precision.

    Unknown codes are shown as dollars, matching what the client does when a
    stored expense carries a code it does not recognise.
    """
    currency = _BY_CODE.get(code)
    if currency is None:
        return f"${quantize_amount(Decimal(amount), DEFAULT_CURRENCY):f}"

    formatted = format_amount(amount, code)
    if currency.code in _SUFFIX_SYMBOL_CODES:
        return f"{formatted} {currency.symbol}"
    return f"{currency.symbol}{formatted}"


def currency_display_name(code: str) -> str:
    """E.g. "USD - US Dollar"; unknown codes are returned unchanged."""
    currency = _BY_CODE.get(code)
    return f"{currency.code} - {currency.name}" if currency else code


def format_expense_amount(expense) -> str:
    """
    Base amount, followed by the originally entered amount in brackets when the
    expense was entered in a different currency.

    Example: "$90.00 (₡50000.00)"
    """
    base = format_currency(expense.amount, expense.currency)
    if (
        expense.original_amount
        and expense.original_currency
        and expense.original_currency != expense.currency
    ):
        original = format_currency(expense.original_amount, expense.original_currency)
        return f"{base} ({original})"
    return base
