# Purpose: HTTP front for the QRIS payload builder. The storefront checkout
# posts an amount and gets back the dynamic QRIS string and its QR image.

import os
import argparse
from flask import Flask, request, jsonify
from flask_cors import CORS
from qris import build_payload, verify_crc, QRISError
from qris_image import render_qr_data_uri, QRRenderError, DEFAULT_WIDTH, DEFAULT_MARGIN, DEFAULT_DARK, DEFAULT_LIGHT
from qris_parser import parse_fields
from qris_generator import QRIS_BASE, create_checkout_record
from schema_validation import schema_errors, validate_against_spec

# --- CONFIGURATION ---
PORT = 33416
HOST = "127.0.0.1"
RENDER_ATTEMPTS = 2
LOG_PREFIX = "QRIS_SERVER: "


def create_app(base_payload=QRIS_BASE, render_options=None, render_attempts=RENDER_ATTEMPTS):
    app = Flask(__name__)
    CORS(app)

    options = {"width": DEFAULT_WIDTH, "margin": DEFAULT_MARGIN, "dark": DEFAULT_DARK, "light": DEFAULT_LIGHT}
    options.update(render_options or {})

    def read_body(schema_name):
        """Returns (data, error_response)."""
        data = request.get_json(silent=True)
        if data is None:
            print(f"{LOG_PREFIX}[!] Received invalid JSON payload")
            return None, (jsonify({"success": False, "error": "Invalid JSON"}), 400)
        errors = schema_errors(data, schema_name)
        if errors:
            print(f"{LOG_PREFIX}[!] Request rejected ({schema_name}): {'; '.join(errors)}")
            return None, (jsonify({"success": False, "error": "Invalid request", "details": errors}), 400)
        return data, None

    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({'status': 'ok', 'service': 'qris-calculator'})

    @app.route('/generate-qris', methods=['POST'])
    def generate_qris():
        """
        Builds the dynamic QRIS string for the posted amount and, unless
        "image" is false, renders it as a PNG data URI.
        """
        data, error = read_body("GenerateRequest")
        if error:
            return error

        base_string = data.get("base_string") or base_payload
        print(f"{LOG_PREFIX}[*] Received QRIS generation request for amount {data['amount']}")

        try:
            qris_string = build_payload(base_string, data["amount"])
        except QRISError as e:
            print(f"{LOG_PREFIX}[!] Could not build QRIS: {e}")
            return jsonify({"success": False, "error": str(e)}), 400

        amount = int(data["amount"])
        body = {
            "success": True,
            "qris_string": qris_string,
            "amount": amount,
            "crc": qris_string[-4:],
            "transaction": create_checkout_record(qris_string, amount, data.get("domain")),
        }

        if data.get("image", True):
            try:
                body["image"] = render_qr_data_uri(qris_string, attempts=render_attempts, **options)
            except QRRenderError as e:
                print(f"{LOG_PREFIX}[!] QR rendering failed: {e}")
                return jsonify({"success": False, "error": f"QR rendering failed: {e}", "qris_string": qris_string}), 502

        validate_against_spec(body, "GenerateResponse", prefix=LOG_PREFIX)
        return jsonify(body)

    @app.route('/validate-qris', methods=['POST'])
    def validate_qris():
        """Checks the trailing CRC of a complete QRIS string."""
        data, error = read_body("QrisStringRequest")
        if error:
            return error

        try:
            is_valid, provided, calculated = verify_crc(data["qris_string"])
        except ValueError as e:
            return jsonify({"success": False, "error": f"Invalid QRIS string: {e}"}), 400

        print(f"{LOG_PREFIX}[*] CRC check: provided={provided} calculated={calculated} valid={is_valid}")
        return jsonify({
            "valid": is_valid,
            "provided_crc": provided,
            "calculated_crc": calculated
        })

    @app.route('/parse-qris', methods=['POST'])
    def parse_qris():
        data, error = read_body("QrisStringRequest")
        if error:
            return error

        body = {"fields": parse_fields(data["qris_string"].strip())}
        validate_against_spec(body, "ParseResponse", prefix=LOG_PREFIX)
        return jsonify(body)

    return app


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="QRIS Calculation Service")
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--base-file", help="File containing the static merchant QRIS payload")
    args = parser.parse_args()

    base = QRIS_BASE
    if args.base_file:
        if not os.path.exists(args.base_file):
            print(f"{LOG_PREFIX}[!] Error: Base payload file '{args.base_file}' not found.")
            raise SystemExit(1)
        with open(args.base_file, "r") as f:
            base = f.read().strip()

    app = create_app(base_payload=base)
    print(f"{LOG_PREFIX}[*] Starting QRIS Calculation Service at http://{args.host}:{args.port}...")
    print(f"{LOG_PREFIX}    - POST /generate-qris")
    print(f"{LOG_PREFIX}    - POST /validate-qris")
    print(f"{LOG_PREFIX}    - POST /parse-qris")
    print(f"{LOG_PREFIX}    - GET  /health")
    app.run(host=args.host, port=args.port)
