# Purpose: Build a dynamic QRIS payment code for a checkout amount and
# render it as a QR image.

import os
import json
import time
import uuid
import argparse
from datetime import datetime, timezone
from qris import build_payload, QRISError
from qris_image import render_qr_png, QRRenderError, DEFAULT_WIDTH, DEFAULT_MARGIN, DEFAULT_DARK, DEFAULT_LIGHT
from schema_validation import validate_against_spec

# --- CONFIGURATION ---
QR_TEXT_FILE = "qrcode.txt"
QR_IMAGE_FILE = "qrcode.png"

# Static merchant QRIS used by the storefront checkout.
QRIS_BASE = "00020101021126610014COM.GO-JEK.WWW01189360091432840999140210G2840999140303UMI51440014ID.CO.QRIS.WWW0215ID10253780771980303UMI5204549953033605802ID5916SIINMEDIA, PCNGN6006JEPARA61055946262070703A01630456FE"


def create_checkout_record(qris_string, amount, domain=None):
    """Describes the pending QRIS transaction the storefront records for a checkout."""
    now = datetime.now(timezone.utc)
    record = {
        "id": uuid.uuid4().hex,
        "transactionId": f"TRX-{int(time.time() * 1000)}",
        "amount": amount,
        "status": "PENDING",
        "paymentMethod": "QRIS",
        "qrisData": qris_string,
        "createdAt": now.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z',
    }
    if domain:
        record["domain"] = domain
    return record


def load_base_payload(base=None, base_file=None):
    if base is not None:
        return base.strip()
    if base_file:
        with open(base_file, "r") as f:
            return f.read().strip()
    return QRIS_BASE


def parse_amount(text):
    """argparse type for amounts: whole, non-negative numbers only."""
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{text}' is not a whole number")
    if value < 0:
        raise argparse.ArgumentTypeError(f"amount must not be negative, got {value}")
    return value


def main(argv=None):
    parser = argparse.ArgumentParser(description="QRIS Dynamic Payment Code Generator")
    parser.add_argument("amount", type=parse_amount, help="Amount in whole Rupiah")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--base", help="Static merchant QRIS payload")
    source.add_argument("--base-file", help="File containing the static merchant QRIS payload")
    parser.add_argument("--domain", help="Domain being purchased (recorded in the checkout record)")
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Image width in pixels")
    parser.add_argument("--margin", type=int, default=DEFAULT_MARGIN, help="Quiet zone in modules")
    parser.add_argument("--dark", default=DEFAULT_DARK, help="Module colour")
    parser.add_argument("--light", default=DEFAULT_LIGHT, help="Background colour")
    parser.add_argument("--out-dir", default=".", help="Where to write the text and image files")
    args = parser.parse_args(argv)

    if args.base_file and not os.path.exists(args.base_file):
        print(f"[!] Error: Base payload file '{args.base_file}' not found.")
        return 1

    base_payload = load_base_payload(args.base, args.base_file)

    print(f"[*] Building dynamic QRIS for amount {args.amount}")
    try:
        qris_string = build_payload(base_payload, args.amount)
    except QRISError as e:
        print(f"[!] Error: {e}")
        return 1

    os.makedirs(args.out_dir, exist_ok=True)
    text_path = os.path.join(args.out_dir, QR_TEXT_FILE)
    with open(text_path, "w") as f:
        f.write(qris_string)
    print(f"[*] Raw QR string saved to '{text_path}'.")

    record = create_checkout_record(qris_string, args.amount, args.domain)
    validate_against_spec(record, "CheckoutRecord")
    print(json.dumps(record, indent=4))

    print("[*] Generating QR Code Image...")
    try:
        png = render_qr_png(qris_string, width=args.width, margin=args.margin, dark=args.dark, light=args.light)
    except QRRenderError as e:
        print(f"[!] Error: QR image could not be rendered: {e}")
        return 1

    image_path = os.path.join(args.out_dir, QR_IMAGE_FILE)
    with open(image_path, "wb") as f:
        f.write(png)
    print(f"[*] QR Code image saved as '{image_path}'.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
