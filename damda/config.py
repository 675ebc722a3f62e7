# damda.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du backend Damda.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, NICEPAY)
- Expose les paramètres du tunnel de paiement (callback, expiration des commandes, relances)
- Sécurité cookies, CORS/hosts
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _int_env(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL") or "")
SUPABASE_ANON_KEY = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# NICEPAY: la clé client est publique (widget), la clé secrète ne quitte jamais le serveur
NICEPAY_CLIENT_KEY = _clean_env(os.getenv("NICEPAY_CLIENT_KEY") or os.getenv("NEXT_PUBLIC_NICEPAY_CLIENT_KEY") or "")
NICEPAY_SECRET_KEY = _clean_env(os.getenv("NICEPAY_SECRET_KEY") or "")
NICEPAY_API_URL = _clean_env(os.getenv("NICEPAY_API_URL") or "https://api.nicepay.co.kr/v1/payments").rstrip("/")
NICEPAY_TIMEOUT_SECONDS = _int_env("NICEPAY_TIMEOUT_SECONDS", 15)

# Tunnel de paiement
CHECKOUT_CALLBACK_PATH = os.getenv("CHECKOUT_CALLBACK_PATH", "/checkout/callback")
CHECKOUT_RETURN_PATH = os.getenv("CHECKOUT_RETURN_PATH", "/api/payment/callback")
CHECKOUT_ORDER_TTL_MINUTES = _int_env("CHECKOUT_ORDER_TTL_MINUTES", 10)
RESERVATION_RETRY_ATTEMPTS = _int_env("RESERVATION_RETRY_ATTEMPTS", 3)

# Approbations réussies gardées en mémoire (rejeu, double clic) puis oubliées
APPROVAL_LEDGER_TTL_SECONDS = _int_env("APPROVAL_LEDGER_TTL_SECONDS", 60 * 60)

# Politique de réservation (cache ~30 min)
RESERVATION_SETTINGS_TTL_SECONDS = _int_env("RESERVATION_SETTINGS_TTL_SECONDS", 30 * 60)

# Fuseau des dates et heures de réservation (jour calendaire des crèches)
BUSINESS_TIMEZONE = _clean_env(os.getenv("BUSINESS_TIMEZONE") or "Asia/Seoul")

# Panier côté client: clé unique du document persistant
CART_STORAGE_KEY = os.getenv("CART_STORAGE_KEY", "damda-cart")

# Cookies / sécurité
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")

# CORS (dev)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")
