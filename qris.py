# Purpose: Turn a static QRIS (EMV-QR) merchant payload into a dynamic one
# carrying a transaction amount, with a recomputed CRC-16/CCITT-FALSE.

import math

TAG_POINT_OF_INITIATION = "01"
TAG_AMOUNT = "54"
TAG_COUNTRY = "58"
TAG_CRC = "63"

STATIC_QR = "11"
DYNAMIC_QR = "12"


class QRISError(ValueError):
    """Base class for payload and amount errors."""


class MalformedPayloadError(QRISError):
    pass


class InvalidAmountError(QRISError):
    pass


def pad(number):
    """Zero-pads a TLV length to 2 digits."""
    if number < 0 or number > 99:
        raise InvalidAmountError(f"Length {number} does not fit a 2-digit TLV length")
    return f"{number:02}"


def calculate_crc(data_string):
    """Calculates the CRC-16/CCITT-FALSE (0xFFFF, 0x1021) for EMV QR."""
    crc = 0xFFFF
    polynomial = 0x1021
    # One byte per character; latin-1 raises for anything wider than a byte.
    data_bytes = data_string.encode('latin-1')

    for byte in data_bytes:
        crc ^= (byte << 8)
        for _ in range(8):
            if (crc & 0x8000):
                crc = (crc << 1) ^ polynomial
            else:
                crc = crc << 1
            crc &= 0xFFFF
    return f"{crc:04X}"


def tlv(tag, value):
    return f"{tag}{pad(len(value))}{value}"


def parse_tlv(data):
    """Parses top-level EMV TLV data into an ordered list of (tag, value) pairs."""
    records = []
    i = 0
    while i < len(data):
        if i + 4 > len(data):
            raise MalformedPayloadError(f"Truncated record header at offset {i}")
        tag = data[i:i+2]
        raw_length = data[i+2:i+4]
        if not (raw_length.isascii() and raw_length.isdigit()):
            raise MalformedPayloadError(f"Invalid length '{raw_length}' for tag {tag} at offset {i}")
        length = int(raw_length)
        value = data[i+4:i+4+length]
        if len(value) != length:
            raise MalformedPayloadError(f"Tag {tag} declares {length} characters, found {len(value)}")
        records.append((tag, value))
        i += 4 + length
    return records


def format_tlv(records):
    return "".join(tlv(tag, value) for tag, value in records)


def check_amount(amount):
    """Returns the amount as an int, or raises InvalidAmountError."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidAmountError(f"Amount must be a number, got {type(amount).__name__}")
    if isinstance(amount, float):
        if not math.isfinite(amount):
            raise InvalidAmountError(f"Amount must be finite, got {amount}")
        if not amount.is_integer():
            raise InvalidAmountError(f"Amount must be a whole number, got {amount}")
        amount = int(amount)
    if amount < 0:
        raise InvalidAmountError(f"Amount must not be negative, got {amount}")
    if amount >= 10 ** 99:
        raise InvalidAmountError("Amount has too many digits for a 2-digit TLV length")
    return amount


def inject_amount(base_payload, amount):
    """
    Rewrites a static payload as dynamic and splices in the Transaction Amount
    (tag 54) just before the Country Code (tag 58). The returned string ends in
    the CRC tag header '6304' and still needs its checksum value.
    """
    amount = check_amount(amount)
    base_payload = base_payload.strip()
    if len(base_payload) < 4:
        raise MalformedPayloadError("Payload is too short to carry a CRC")
    try:
        base_payload.encode('latin-1')
    except UnicodeEncodeError as e:
        raise MalformedPayloadError(f"Character {base_payload[e.start]!r} at offset {e.start} is wider than one byte") from e

    records = [(tag, value) for tag, value in parse_tlv(base_payload)
               if tag not in (TAG_CRC, TAG_AMOUNT)]

    tags = [tag for tag, _ in records]
    if TAG_POINT_OF_INITIATION not in tags:
        raise MalformedPayloadError("Point of Initiation Method (tag 01) not found")
    country_count = tags.count(TAG_COUNTRY)
    if country_count != 1:
        raise MalformedPayloadError(f"Expected exactly one Country Code (tag 58), found {country_count}")

    output = []
    for tag, value in records:
        if tag == TAG_POINT_OF_INITIATION:
            value = DYNAMIC_QR
        elif tag == TAG_COUNTRY:
            output.append((TAG_AMOUNT, str(amount)))
        output.append((tag, value))

    return format_tlv(output) + TAG_CRC + "04"


def build_payload(base_payload, amount):
    """Builds the final dynamic QRIS string, checksum included."""
    output = inject_amount(base_payload, amount)
    return output + calculate_crc(output)


def verify_crc(payload):
    """Returns (is_valid, provided_crc, calculated_crc) for a complete payload."""
    payload = payload.strip()
    if len(payload) < 8 or payload[-8:-4] != TAG_CRC + "04":
        return False, None, None
    provided = payload[-4:].upper()
    calculated = calculate_crc(payload[:-4])
    return provided == calculated, provided, calculated
