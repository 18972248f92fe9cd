"""
Chat texts and small formatting helpers for the Telegram front end.
"""

import re
from datetime import datetime
from math import ceil
from typing import Optional, Tuple

from app.domain.account import Account, AccountStats, utcnow, as_utc
from app.domain.bot_settings import BotSettings, CreditPackage


GENERIC_ERROR = "❌ Une erreur est survenue. Veuillez réessayer."
ACCESS_DENIED = "❌ Accès refusé"
USER_NOT_FOUND = "❌ Utilisateur non trouvé"

PRIVATE_BOT = (
    "🔒 Ce bot est privé.\n\n"
    "🔑 Pour entrer, tapez `/code VOTRE_CODE`\n\n"
    "Ou utilisez le lien d'invitation reçu."
)

ANALYZE_USAGE = "❌ Utilisation: `/analyze Équipe1 vs Équipe2`\n\nExemple: `/analyze PSG vs Marseille`"
ANALYZE_BAD_FORMAT = "❌ Format invalide. Utilise: `/analyze Équipe1 vs Équipe2`"
ANALYZE_FAILED = (
    "❌ Erreur lors de l'analyse.\n\n"
    "Vérifie les noms des équipes et réessaie.\n\n"
    "💡 Conseil: Utilise les noms complets (ex: \"Paris Saint-Germain\" au lieu de \"PSG\")"
)
PHOTO_FAILED = (
    "❌ Erreur lors de l'analyse de l'image.\n\n"
    "**Causes possibles :**\n"
    "• Image trop floue ou illisible\n"
    "• Format d'image non supporté\n"
    "• Erreur temporaire du service\n\n"
    "💡 Essaie avec un screenshot plus clair ou utilise `/analyze Équipe1 vs Équipe2`"
)
REANALYZE_FAILED = "❌ Erreur lors de la relance de l'analyse."
CORRECTION_FAILED = "❌ Erreur lors de l'analyse. Vérifie les noms des équipes."
CORRECTION_PROMPT = (
    "✏️ **Correction des équipes**\n\n"
    "Envoie-moi le match corrigé au format :\n"
    "`Équipe1 vs Équipe2`\n\n"
    "Exemple : `PSG vs Marseille`"
)
CORRECTION_BAD_FORMAT = "❌ Format invalide.\n\nUtilise : `Équipe1 vs Équipe2`"
NO_RECENT_ANALYSIS = "❌ Aucune analyse récente trouvée. Veuillez relancer une analyse."
NO_REPORT_FOR_BETS = "⚠️ Veuillez d'abord analyser un match pour voir les paris."
DEFAULT_TEXT_REPLY = (
    "📸 Envoie-moi un **screenshot** d'un match pour l'analyser !\n\n"
    "Ou utilise `/analyze Équipe1 vs Équipe2` pour une analyse manuelle."
)
PROCESSING_PHOTO = "📸 Image reçue !\n\n⏳ Analyse en cours...\n\n🔍 Détection du match..."
PROCESSING_EXTRACTION = "📸 Image reçue !\n\n⏳ Analyse en cours...\n\n🤖 Extraction des informations..."
PREMIUM_DISABLED = "❌ Les abonnements Premium sont actuellement désactivés."
OFFERS_LOADING = "🔄 Chargement des offres personnalisées..."
OFFERS_FAILED = "❌ Erreur lors du chargement des offres. Réessaie plus tard."

HELP = """📖 **Guide d'utilisation FootBot**

**🖼️ Analyse par screenshot :**
Envoie simplement une image d'un match depuis ton application de paris.
Je détecte automatiquement :
• Les équipes
• La compétition
• La date/heure
• Les cotes (si visibles)

**✍️ Analyse manuelle :**
`/analyze PSG vs Marseille`
`/analyze Barcelona vs Real Madrid`

**📊 Ce que j'analyse :**
• Forme récente (5-10 derniers matchs)
• Avantage domicile
• Blessures et suspensions
• Conditions météo
• Fatigue/calendrier chargé
• Confrontations directes
• Enjeux du match

**💳 Commandes compte :**
• /compte - Voir tes crédits
• /acheter - Acheter des analyses
• /premium - Abonnement illimité

**💡 Conseils :**
• Utilise des screenshots clairs et lisibles
• Les matchs pré-match donnent de meilleurs résultats
• Les grandes compétitions ont plus de données

**⚠️ Rappel :**
Les paris comportent des risques. Joue de manière responsable."""

ADMIN_HELP = """🔧 **Panneau Admin FootBot**

**Commandes disponibles :**
• /admin\\_stats - Statistiques globales
• /admin\\_user \\[telegramId\\] - Infos utilisateur
• /admin\\_credits \\[telegramId\\] \\[amount\\] - Ajouter crédits
• /admin\\_ban \\[telegramId\\] \\[raison\\] - Bannir utilisateur
• /admin\\_unban \\[telegramId\\] - Débannir
• /admin\\_maintenance - Toggle maintenance
• /admin\\_setfree \\[nombre\\] - Changer limite gratuite
• /admin\\_private - Toggle mode privé
• /admin\\_invite add|remove|list \\[code\\] \\[unlimited\\] - Codes d'invitation

🖥️ Dashboard web : {dashboard_url}/admin"""

# "PSG vs Marseille", "PSG vs. OM", "PSG contre OM", "PSG - OM"
_PAIRING = re.compile(r"(.+?)\s+(?:vs\.?|contre|-)\s+(.+)", re.IGNORECASE)


def parse_team_pairing(text: str) -> Optional[Tuple[str, str]]:
    """Split a typed pairing into (home, away), or None."""
    match = _PAIRING.match(text.strip())
    if not match:
        return None
    home, away = match.group(1).strip(), match.group(2).strip()
    if not home or not away:
        return None
    return home, away


def euros(cents: int) -> str:
    return f"{cents / 100:.2f}€"


def welcome(remaining_free: int, custom: Optional[str] = None) -> str:
    intro = custom or "Je suis ton assistant IA pour l'analyse de matchs de football."
    return f"""⚽ **Bienvenue sur FootBot !** 🤖

{intro}

**Comment m'utiliser :**
1️⃣ Envoie-moi un **screenshot** d'un match (pré-match de préférence)
2️⃣ J'analyse automatiquement les équipes, la compétition, les cotes
3️⃣ Je te fournis une analyse complète avec probabilités et suggestions de paris

**Commandes disponibles :**
• /help - Afficher l'aide
• /analyze \\[équipe1\\] vs \\[équipe2\\] - Analyse manuelle
• /compte - Voir ton compte et crédits
• /acheter - Acheter des crédits
• /premium - Passer Premium

**Compétitions supportées :**
🇫🇷 Ligue 1 | 🏴 Premier League | 🇪🇸 La Liga
🇩🇪 Bundesliga | 🇮🇹 Serie A | 🏆 Champions League

🎁 **Tu as {remaining_free} analyses gratuites !**

📸 **Envoie-moi un screenshot pour commencer !**"""


def quota_status(stats: AccountStats) -> str:
    """Line appended after a paid-path analysis."""
    if stats.remaining_free > 0:
        return f"\n\n📊 _Messages gratuits restants: {stats.remaining_free}_"
    if stats.messages_with_credits > 0:
        return f"\n\n💰 _Crédits restants: {stats.messages_with_credits} analyses_"
    return ""


def low_confidence_notice(confidence: int) -> str:
    emoji = "🟢" if confidence >= 80 else "🟡" if confidence >= 50 else "🔴"
    return (
        f"{emoji} **Confiance OCR: {confidence}%**\n"
        "_Si le match détecté est incorrect, utilise le bouton \"Corriger équipes\"_\n\n"
    )


def premium_days_left(premium_until: Optional[datetime], now: Optional[datetime] = None) -> int:
    if premium_until is None:
        return 0
    seconds = (as_utc(premium_until) - (now or utcnow())).total_seconds()
    return max(0, ceil(seconds / 86400))


def account_summary(stats: AccountStats) -> str:
    premium_status = "❌ Non abonné"
    if stats.is_premium and stats.premium_until:
        premium_status = f"👑 Premium ({premium_days_left(stats.premium_until)} jours restants)"

    return f"""👤 **Mon Compte FootBot**

📊 **Statistiques :**
• Analyses effectuées : {stats.total_messages}
• Dépenses totales : {euros(stats.total_spent)}

🎁 **Messages gratuits :**
• Restants : {stats.remaining_free}/{stats.free_messages_limit}

💰 **Crédits :**
• Solde : {stats.remaining_credits} crédits
• Équivalent : {stats.messages_with_credits} analyses
• Coût par analyse : {stats.cost_per_message} crédit(s)

👑 **Premium :**
• Statut : {premium_status}

📦 Utilise /acheter pour recharger ton compte !"""


def credit_offers(packages: list[CreditPackage]) -> str:
    lines = ["💳 **Acheter des analyses**", "", "Choisis un pack de crédits :", ""]
    for package in packages:
        badge = " ⭐ Populaire" if package.popular else ""
        lines.append(f"**+{package.credits} Analyses** - {euros(package.price)}{badge}")
        lines.append("")
    return "\n".join(lines)


def yearly_savings(bot_settings: BotSettings) -> int:
    return bot_settings.premium_monthly_price * 12 - bot_settings.premium_yearly_price


def premium_offer(bot_settings: BotSettings) -> str:
    return f"""👑 **FootBot Premium**

Analyses illimitées, sans compter tes crédits !

**📅 Mensuel : {euros(bot_settings.premium_monthly_price)}/mois**
• Analyses illimitées
• Support prioritaire
• Accès aux nouvelles fonctionnalités

**📅 Annuel : {euros(bot_settings.premium_yearly_price)}/an**
• Tout le mensuel
• Économise {euros(yearly_savings(bot_settings))}

_Clique sur un bouton pour t'abonner :_"""


def admin_stats(stats: dict[str, int], revenue: dict[str, int]) -> str:
    return f"""📊 **Statistiques FootBot**

👥 Utilisateurs : {stats.get("total_users", 0)}
👑 Premium : {stats.get("premium_users", 0)}
🚫 Bannis : {stats.get("banned_users", 0)}
📨 Messages : {stats.get("total_messages", 0)} (aujourd'hui : {stats.get("messages_today", 0)})
💰 Revenus : {euros(revenue.get("total_revenue", 0))}"""


def _day(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y") if value else "N/A"


def admin_user(account: Account) -> str:
    name = f"{account.first_name or ''} {account.last_name or ''}".strip()
    return f"""👤 **Utilisateur {account.telegram_id}**

📝 Username : @{account.username or 'N/A'}
👤 Nom : {name or 'N/A'}

📊 **Statistiques :**
• Messages : {account.total_messages_sent}
• Gratuits utilisés : {account.free_messages_used}/{account.free_messages_limit}
• Crédits : {account.credits}
• Dépenses : {euros(account.total_spent)}

👑 Premium : {'Oui' if account.premium_active() else 'Non'}
🚫 Banni : {'Oui' if account.is_banned else 'Non'}
⚙️ Admin : {'Oui' if account.is_admin else 'Non'}

📅 Inscrit : {_day(account.created_at)}
🕐 Dernière activité : {_day(account.last_active_at)}"""
