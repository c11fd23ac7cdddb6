# Purpose: Parse and validate QRIS (EMV-QR Merchant Presented Mode) content.

import os
import re
import argparse
from qris import verify_crc

# --- CONFIGURATION ---
QR_TEXT_FILE = "qrcode.txt"

# Tags 26-51 all carry a Merchant Account Information template in QRIS.
MERCHANT_ACCOUNT_TAGS = {f"{n:02}" for n in range(26, 52)}
TEMPLATE_TAGS = MERCHANT_ACCOUNT_TAGS | {"62"}

# EMV Tag Definitions and Basic Validation Rules
TAG_INFO = {
    "00": {"desc": "Payload Format Indicator", "min_len": 2, "max_len": 2, "pattern": r"^01$"},
    "01": {"desc": "Point of Initiation Method", "min_len": 2, "max_len": 2, "pattern": r"^(11|12)$"},
    "52": {"desc": "Merchant Category Code (MCC)", "min_len": 4, "max_len": 4, "pattern": r"^\d{4}$"},
    "53": {"desc": "Transaction Currency", "min_len": 3, "max_len": 3, "pattern": r"^\d{3}$"},
    "54": {"desc": "Transaction Amount", "min_len": 1, "max_len": 13, "pattern": r"^\d+(\.\d{1,2})?$"},
    "55": {"desc": "Tip or Convenience Indicator", "min_len": 2, "max_len": 2, "pattern": r"^0[1-3]$"},
    "56": {"desc": "Value of Convenience Fee Fixed", "min_len": 1, "max_len": 13, "pattern": r"^\d+(\.\d{1,2})?$"},
    "57": {"desc": "Value of Convenience Fee Percentage", "min_len": 1, "max_len": 5, "pattern": r"^\d{1,2}(\.\d{1,2})?$"},
    "58": {"desc": "Country Code", "min_len": 2, "max_len": 2, "pattern": r"^[A-Z]{2}$"},
    "59": {"desc": "Merchant Name", "min_len": 1, "max_len": 25},
    "60": {"desc": "Merchant City", "min_len": 1, "max_len": 15},
    "61": {"desc": "Postal Code", "min_len": 1, "max_len": 10},
    "62": {"desc": "Additional Data Field Template", "min_len": 1, "max_len": 99},
    "63": {"desc": "CRC", "min_len": 4, "max_len": 4, "pattern": r"^[0-9A-F]{4}$"},
    "64": {"desc": "Merchant Information - Language Template", "min_len": 1, "max_len": 99},
}
for _tag in MERCHANT_ACCOUNT_TAGS:
    TAG_INFO[_tag] = {"desc": "Merchant Account Information", "min_len": 1, "max_len": 99}
TAG_INFO["51"] = {"desc": "Merchant Account Information (National)", "min_len": 1, "max_len": 99}

MERCHANT_ACCOUNT_SUBTAGS = {
    "00": {"desc": "Global Unique Identifier", "min_len": 1, "max_len": 32},
    "01": {"desc": "Merchant PAN", "min_len": 1, "max_len": 19, "pattern": r"^\d+$"},
    "02": {"desc": "Merchant ID", "min_len": 1, "max_len": 15},
    "03": {"desc": "Merchant Criteria", "min_len": 3, "max_len": 3, "pattern": r"^(UMI|UKE|UME|UBE|URE)$"},
}

SUBTAG_INFO = {
    "62": {
        "01": {"desc": "Bill Number", "max_len": 25},
        "02": {"desc": "Mobile Number", "max_len": 25},
        "03": {"desc": "Store Label", "max_len": 25},
        "04": {"desc": "Loyalty Number", "max_len": 25},
        "05": {"desc": "Reference Label", "max_len": 25},
        "06": {"desc": "Customer Label", "max_len": 25},
        "07": {"desc": "Terminal Label", "max_len": 25},
        "08": {"desc": "Purpose of Transaction", "max_len": 25},
        "09": {"desc": "Additional Consumer Data Request", "max_len": 3, "pattern": r"^[AME]{1,3}$"},
    }
}
for _tag in MERCHANT_ACCOUNT_TAGS:
    SUBTAG_INFO[_tag] = MERCHANT_ACCOUNT_SUBTAGS


def lookup_info(tag, parent_tag=None):
    if parent_tag:
        return SUBTAG_INFO.get(parent_tag, {}).get(tag)
    return TAG_INFO.get(tag)


def validate_field(tag, value, parent_tag=None):
    """Validates the value against EMV/QRIS constraints."""
    info = lookup_info(tag, parent_tag)
    if not info:
        return True, "N/A"

    if "min_len" in info and len(value) < info["min_len"]:
        return False, f"ERR: Too short (min {info['min_len']})"
    if "max_len" in info and len(value) > info["max_len"]:
        return False, f"ERR: Too long (max {info['max_len']})"

    if "pattern" in info and not re.match(info["pattern"], value):
        return False, "ERR: Format mismatch"

    return True, "OK"


def parse_fields(data, parent_tag=None):
    """Parses EMV TLV data into field dictionaries, stopping at the first broken record."""
    results = []
    i = 0
    while i < len(data):
        if i + 4 > len(data):
            break
        tag = data[i:i+2]
        try:
            length = int(data[i+2:i+4])
        except ValueError:
            break

        value = data[i+4:i+4+length]
        if len(value) != length:
            break

        info = lookup_info(tag, parent_tag)
        if info:
            desc = info["desc"]
        else:
            desc = "Unknown Subtag" if parent_tag else "Unknown Tag"

        is_valid, msg = validate_field(tag, value, parent_tag)

        field = {
            "tag": tag,
            "length": length,
            "value": value,
            "description": desc,
            "is_valid": is_valid,
            "validation_msg": msg
        }
        if parent_tag is None and tag in TEMPLATE_TAGS:
            field["subfields"] = parse_fields(value, parent_tag=tag)
        results.append(field)

        i += 4 + length
    return results


def print_report(qr_content):
    print("="*110)
    print("EMV QR PARSER - QRIS VALIDATOR")
    print("="*110)
    print(f"Raw Content: {qr_content}\n")

    # 1. CRC Validation
    is_valid, provided, calculated = verify_crc(qr_content)
    if provided is None:
        print("[!] Error: CRC tag (6304) not found at the expected position.")
    elif is_valid:
        print(f"[OK] CRC-16/CCITT-FALSE Valid: {calculated}")
    else:
        print(f"[!] CRC Mismatch: Calculated {calculated}, Found {provided}")

    # 2. Field Parsing and Display
    fields = parse_fields(qr_content)

    print(f"\n{'TAG':3}.  | {'LEN':3} | {'VALID':12} | {'DESCRIPTION':40} | {'VALUE'}")
    print("-" * 110)

    for field in fields:
        status = "[OK]" if field['is_valid'] else f"[{field['validation_msg']}]"
        print(f"{field['tag']:3}   | {field['length']:02}  | {status:12} | {field['description']:40} | {field['value']}")

        for sub in field.get("subfields", []):
            sub_status = "[OK]" if sub['is_valid'] else f"[{sub['validation_msg']}]"
            print(f"{field['tag']}.{sub['tag']:2} | {sub['length']:02}  | {sub_status:12} | {sub['description']:40} | {sub['value']}")

    print("="*110)
    return is_valid


def main():
    parser = argparse.ArgumentParser(description="QRIS Payload Parser")
    parser.add_argument("content", nargs="?", default=QR_TEXT_FILE,
                        help=f"QRIS string or path to a file containing one (default: {QR_TEXT_FILE})")
    args = parser.parse_args()

    if os.path.exists(args.content):
        with open(args.content, "r") as f:
            qr_content = f.read().strip()
    elif args.content == QR_TEXT_FILE:
        print(f"[!] Error: {QR_TEXT_FILE} not found. Run qris_generator.py first.")
        return 1
    else:
        qr_content = args.content.strip()

    return 0 if print_report(qr_content) else 1


if __name__ == "__main__":
    raise SystemExit(main())
