#!/usr/bin/env python3
"""
Firma una factura XML (UBL) con XMLDSig enveloped usando un certificado PFX/P12.

Uso:
    invoice-signer --xml factura.xml --pfx certificado.pfx --password secreto
    invoice-signer --xml factura.xml --output factura_firmada.xml --verify
    invoice-signer --pfx certificado.pfx --cert-info

Sin --pfx/--password se usan INVOICE_SIGNER_PFX_PATH e INVOICE_SIGNER_PFX_PASSWORD
(o INVOICE_SIGNER_PFX_PASSWORD_FILE), también desde un archivo .env.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import SignerConfig
from .exceptions import InputError, InvoiceSignerError
from .keystore import describe_certificate, extract_key_material, read_keystore
from .pipeline import sign_invoice_xml_with_keystore_file
from .verifier import verify_signed_xml

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="invoice-signer",
        description="Firma una factura XML con XMLDSig enveloped (rsa-sha1, digest sha256)",
    )
    parser.add_argument(
        "--xml", "-x",
        type=Path,
        help="Archivo XML de la factura a firmar"
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Archivo de salida (default: stdout)"
    )
    parser.add_argument(
        "--pfx",
        type=str,
        help="Ruta al certificado PFX/P12 (default: INVOICE_SIGNER_PFX_PATH)"
    )
    parser.add_argument(
        "--password",
        type=str,
        help="Contraseña del certificado (default: INVOICE_SIGNER_PFX_PASSWORD)"
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verificar la firma del XML resultante"
    )
    parser.add_argument(
        "--cert-info",
        action="store_true",
        help="Mostrar los datos del certificado del keystore y salir"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Nivel de logging (default: INVOICE_SIGNER_LOG_LEVEL o INFO)"
    )
    return parser


def _show_cert_info(config: SignerConfig) -> int:
    material = extract_key_material(read_keystore(config.pfx_path), config.pfx_password)
    print(json.dumps(describe_certificate(material.certificate), indent=2, ensure_ascii=False))
    return 0


def _sign(args: argparse.Namespace, config: SignerConfig) -> int:
    if args.xml is None:
        print("❌ Error: falta --xml con la factura a firmar", file=sys.stderr)
        return 1
    if not args.xml.is_file():
        raise InputError(f"Archivo XML no encontrado: {args.xml}")

    xml = args.xml.read_text(encoding="utf-8")
    signed_xml = sign_invoice_xml_with_keystore_file(xml, config.pfx_path, config.pfx_password)

    if args.verify and not verify_signed_xml(signed_xml):
        print("❌ Error: la firma generada no verifica", file=sys.stderr)
        return 1

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(signed_xml, encoding="utf-8")
        print(f"✅ XML firmado guardado en: {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(signed_xml)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = SignerConfig.from_env(pfx_path=args.pfx, pfx_password=args.password)
    except InvoiceSignerError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(level=(args.log_level or config.log_level).upper(), format=LOG_FORMAT)

    if config.pfx_path is None:
        print("❌ Error: Falta certificado de firma", file=sys.stderr)
        print("   Opciones:", file=sys.stderr)
        print("   1) --pfx /ruta/al/certificado.pfx --password contraseña", file=sys.stderr)
        print("   2) export INVOICE_SIGNER_PFX_PATH=/ruta/al/certificado.pfx", file=sys.stderr)
        return 1

    try:
        if args.cert_info:
            return _show_cert_info(config)
        return _sign(args, config)
    except InvoiceSignerError as e:
        print(f"❌ Error ({type(e).__name__}): {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
