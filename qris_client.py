# Purpose: Manual smoke-test client for a running qris_server.py.

import os
import json
import base64
import argparse
import requests

PORT = 33416
HOST = "127.0.0.1"
BASE_URL = f"http://{HOST}:{PORT}"


def post(path, payload):
    url = f"{BASE_URL}{path}"
    print(f"QRIS_CLIENT: [*] Sending POST request to {url}")
    try:
        response = requests.post(url, json=payload, timeout=10)
    except requests.exceptions.ConnectionError:
        print(f"QRIS_CLIENT: [!] Error: Could not connect to {url}. Is qris_server.py running?")
        return None

    print(f"QRIS_CLIENT: [*] Status Code: {response.status_code}")
    try:
        return response.json()
    except json.JSONDecodeError:
        print("QRIS_CLIENT: [*] Response Body (Text):")
        print(response.text)
        return None


def read_qris_input(qr_input):
    if os.path.exists(qr_input):
        with open(qr_input, 'r') as f:
            print(f"QRIS_CLIENT: [*] Loaded QRIS content from file: {qr_input}")
            return f.read().strip()
    return qr_input


def run_generate(amount, domain=None, image_path=None):
    payload = {"amount": amount, "image": image_path is not None}
    if domain:
        payload["domain"] = domain
    body = post("/generate-qris", payload)
    if body is None:
        return

    image = body.pop("image", None)
    print(json.dumps(body, indent=4))
    if image and image_path:
        png = base64.b64decode(image.split(",", 1)[1])
        with open(image_path, "wb") as f:
            f.write(png)
        print(f"QRIS_CLIENT: [*] QR Code image saved as '{image_path}'.")


def run_check(path, qr_input):
    body = post(path, {"qris_string": read_qris_input(qr_input)})
    if body is not None:
        print(json.dumps(body, indent=4))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Test utility for the QRIS Calculation Service")
    parser.add_argument("--generate", type=int, metavar="AMOUNT", help="Request a dynamic QRIS for AMOUNT")
    parser.add_argument("--domain", help="Domain name to attach to --generate")
    parser.add_argument("--image", metavar="PATH", help="Save the rendered QR image from --generate to PATH")
    parser.add_argument("--validate", metavar="QRIS", help="QRIS string or file to CRC-check")
    parser.add_argument("--parse", metavar="QRIS", help="QRIS string or file to break into fields")
    parser.add_argument("--url", default=BASE_URL, help="Service base URL")
    args = parser.parse_args()

    BASE_URL = args.url.rstrip('/')

    if args.generate is not None:
        run_generate(args.generate, args.domain, args.image)
    elif args.validate:
        run_check("/validate-qris", args.validate)
    elif args.parse:
        run_check("/parse-qris", args.parse)
    else:
        parser.print_help()
