#!/usr/bin/env python3
"""
Load environment variables from Azure Key Vault, with optional per-user overrides.
Falls back to .env when Key Vault is unavailable or not configured.
"""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Known env vars to fetch from Key Vault (in lookup order for per-user)
ENV_VARS = (
    "SqlConnectionString",
    "ServiceBusConnection",
    "DefaultUserPassword",
    "EmailQueueName",
    "SCHEMA",
)


def _env_to_secret_name(env_key: str) -> str:
    """Convert env var name to Key Vault secret name (underscores -> hyphens)."""
    return env_key.replace("_", "-")


def _load_from_dotenv() -> None:
    """Load vars from the first .env found; existing os.environ values win."""
    for base in (Path.cwd(), Path(__file__).resolve().parent.parent):
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path, override=False)
            return


def load_env() -> None:
    """
    Load env vars from Azure Key Vault (or .env fallback).
    - KEYVAULT_NAME: vault name (required for Key Vault)
    - AZURE_USER_NAME: optional; use {VAR}-{USER} secrets first, then {VAR}
    - Does not overwrite existing os.environ values (allows CLI/app setting overrides)
    """
    _load_from_dotenv()
    vault_name = os.environ.get("KEYVAULT_NAME", "").strip()
    user_name = os.environ.get("AZURE_USER_NAME", "").strip().upper()

    if not vault_name:
        return

    from azure.core.exceptions import AzureError
    from azure.identity import DefaultAzureCredential
    from azure.keyvault.secrets import SecretClient

    credential = DefaultAzureCredential()
    url = f"https://{vault_name}.vault.azure.net/"
    client = SecretClient(vault_url=url, credential=credential)

    for var in ENV_VARS:
        if var in os.environ:
            continue  # Do not overwrite (CLI override)
        secret_names = []
        base_name = _env_to_secret_name(var)
        if user_name:
            secret_names.append(f"{base_name}-{user_name}")
        secret_names.append(base_name)
        for name in secret_names:
            try:
                secret = client.get_secret(name)
            except AzureError as exc:
                logger.debug("Key Vault secret %s unavailable: %s", name, exc)
                continue
            if secret and secret.value:
                os.environ[var] = secret.value
                break
