"""
Prompt templates for the analysis pipeline.

All user-facing output is French; the reasoning prompt pins the JSON
shape validated by SynthesisOutput.
"""

from datetime import datetime


_DAYS = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
_MONTHS = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


def french_date(value: datetime) -> str:
    """'jeudi 16 octobre 2026'"""
    return f"{_DAYS[value.weekday()]} {value.day} {_MONTHS[value.month - 1]} {value.year}"


EXTRACTION_SYSTEM = "You are a football data extraction expert. You output only valid JSON."

MATCH_EXTRACTION_PROMPT = """Tu es un expert en extraction de données de matchs de football.

Analyse ce screenshot de match et extrais les informations suivantes au format JSON strict.

RÈGLES :
1. Identifie les deux équipes (home = domicile, away = extérieur)
2. Si un nom est abrégé ou partiellement visible, déduis le nom complet
3. Relève la compétition si elle est visible (Ligue 1, Premier League, Champions League...)
4. Relève la date et l'heure si elles sont visibles
5. Relève le stade ou la ville si visible
6. Relève les cotes visibles (1/N/2, Over/Under 2.5, BTTS)
7. Statut : pre-match, live, finished ou unknown
8. Score de confiance OCR de 0 à 100

FORMAT (JSON strict) :
{
  "teamHome": "Équipe domicile",
  "teamAway": "Équipe extérieur",
  "competition": "Compétition ou null",
  "date": "YYYY-MM-DD ou null",
  "time": "HH:MM ou null",
  "venue": "Stade/ville ou null",
  "status": "pre-match|live|finished|unknown",
  "odds": {"home": 1.50, "draw": 4.00, "away": 6.50, "over25": 1.80, "under25": 2.00, "bttsYes": 1.75, "bttsNo": 2.10},
  "ocrConfidence": 85,
  "rawText": "Texte brut lu sur l'image"
}

Une information absente vaut null. Sans cotes visibles, "odds" vaut null.
Réponds UNIQUEMENT avec le JSON."""


LIVE_CONTEXT_FALLBACK = "Impossible de récupérer les informations en direct (Erreur de recherche)."

LIVE_CONTEXT_PROMPT = """Recherche les informations les plus récentes (date du jour : {today}) sur le match de football {home} vs {away}{competition}.

Rassemble des données précises sur :
1. **Effectif & santé** : blessures, suspensions, retours, minutes jouées récemment (fatigue).
2. **Compositions probables** : les onze attendus.
3. **Contexte & enjeux** : classement, objectifs (titre, maintien), rivalité, prochains matchs importants (rotation ?).
4. **Voyage & logistique** : distance de déplacement de l'équipe visiteuse, jours de repos depuis le dernier match.
5. **Météo** : prévisions locales à l'heure du match (pluie, vent, température).
6. **Ambiance & rumeurs** : tensions internes, soupçons de match arrangé, mouvements de cotes suspects.

Fais un résumé dense, technique et factuel. Signale toute information introuvable."""


SYNTHESIS_PROMPT = """Tu es un expert mondial de l'analyse de matchs de football et des paris sportifs.
Tu reçois des données JSON structurées et un résumé d'informations récupérées en direct sur internet.
Produis une analyse JSON de niveau professionnel.

⏰ DATE ACTUELLE : {today}

1. INFORMATIONS LIVE :
{live_context}

2. MATCH :
{match}

3. STATS DOMICILE :
{home_stats}

4. STATS EXTÉRIEUR :
{away_stats}

5. CONFRONTATIONS DIRECTES :
{head_to_head}

6. MÉTÉO :
{weather}

---
Couvre impérativement ces 8 dimensions :
A) Contexte du match : lieu, importance (coupe/championnat), affluence.
B) Voyage & fatigue : distance, jours de repos, enchaînement des matchs.
C) Santé & effectif : absents (blessés/suspendus), impact tactique, retours.
D) Météo : température, vent, pluie, état du terrain.
E) Forme & charge : série sur 5-10 matchs, densité du calendrier.
F) Style & match-up : possession ou contre, xG/xGA récents, opposition de styles.
G) Enjeux & motivation : classement, besoin de points, derby, rotation.
H) Risque / match suspect : signaux de trucage, cotes anormales, absence d'enjeu.

Puis estime les probabilités (1X2, BTTS, Over/Under), imagine le scénario du match et propose des paris value avec leur niveau de risque.

---
SORTIE (JSON STRICT, rien d'autre) :
{{
  "analysis": {{
    "matchContext": {{"venue": "...", "importance": "...", "atmosphere": "..."}},
    "injuries": {{
      "homeTeam": {{"out": ["..."], "doubtful": ["..."], "impact": "low|medium|high|critical"}},
      "awayTeam": {{"out": ["..."], "doubtful": ["..."], "impact": "low|medium|high|critical"}},
      "summary": "..."
    }},
    "lineups": {{
      "homeTeam": {{"formation": "...", "probable11": ["..."], "keyPlayers": ["..."], "coach": "..."}},
      "awayTeam": {{"formation": "...", "probable11": ["..."], "keyPlayers": ["..."], "coach": "..."}}
    }},
    "form": {{
      "homeTeam": {{"description": "...", "trend": "..."}},
      "awayTeam": {{"description": "...", "trend": "..."}},
      "advantage": "home|away|equal",
      "summary": "..."
    }},
    "styles": {{"matchupAnalysis": "..."}},
    "stakes": {{"summary": "..."}},
    "h2h": {{"trend": "..."}},
    "weather": {{"impact": "...", "affectedStyle": "..."}},
    "suspiciousActivity": {{"riskLevel": "low|medium|high", "description": "..."}},
    "alerts": [{{"type": "info|warning|critical", "message": "..."}}]
  }},
  "predictions": {{
    "homeWin": 45, "draw": 28, "awayWin": 27,
    "over25": 55, "under25": 45,
    "bttsYes": 60, "bttsNo": 40,
    "exactScores": [{{"score": "2-1", "probability": 12}}],
    "likelyScorers": [{{"player": "...", "team": "...", "probability": 40}}],
    "mostLikelyOutcome": "..."
  }},
  "suggestions": [
    {{
      "type": "1X2|Over/Under|BTTS|...",
      "selection": "...",
      "probability": 65,
      "recommendedOdds": 1.5,
      "riskLevel": "low|medium|high",
      "explanation": "...",
      "confidence": 80
    }}
  ],
  "overallConfidence": 80,
  "dataQuality": "good"
}}"""


FORMAT_SYSTEM = "You are a professional sports betting analyst bot."

FORMAT_PROMPT = """Formate ce rapport d'analyse de match pour Telegram.

RAPPORT :
{report}

CONSIGNES :
1. Emojis appropriés, structure claire avec séparateurs.
2. 4000 caractères maximum.
3. Ton professionnel : énergique, expert, précis.
4. Mets en avant le VERDICT et les PARIS.

FORMAT :

📍 **Bloc 1 — Résumé**
• ⚽ **Match** : [Équipe A] vs [Équipe B]
• 🏆 **Compétition** : [Nom]
• 📅 **Date/Heure** : [Date] à [Heure]
• 📍 **Lieu** : [Stade/Ville]
• 🌦️ **Météo** : [Info météo]
• 🧠 **Confiance IA** : [XX]/100

📍 **Bloc 2 — Analyse**
• ✈️ **Voyage/Fatigue** : [distance et repos]
• 🏥 **Santé joueurs** : [absents majeurs et impact]
• ⚡ **Forme & charge** : [dynamique récente]
• ⚔️ **Match-up** : [analyse tactique]
• 🎯 **Enjeux** : [classement, motivation, rotation]
• ⚠️ **Risque suspect** : [Faible/Moyen/Élevé + raison]

📍 **Bloc 3 — Probabilités**
• 1️⃣ [Équipe A] : **XX%**
• ✖️ Nul : **XX%**
• 2️⃣ [Équipe B] : **XX%**

📍 **Bloc 4 — Paris proposés**
[3 à 5 meilleurs paris]
• 💎 **[Sélection]** (@[Cote]) - [Risque]
  _Explication courte_

🏆 **Verdict** : [conclusion]"""


DEEP_STATS_SYSTEM = "You are a football stats expert."

DEEP_STATS_FALLBACK = "❌ Erreur lors de la génération des statistiques détaillées."

DEEP_STATS_PROMPT = """Tu es un statisticien expert du football.

MISSION : un rapport statistique très détaillé pour les parieurs qui ont demandé « Plus de détails ».

Données :
{home_stats}
{away_stats}
Contexte live : {live_context}

SORTIE (Markdown Telegram), exhaustive :

📊 **DÉTAILS & STATS AVANCÉES**
{home} vs {away}

📈 **Performances & xG**
• {home} : xG moyen, buts réels (sur/sous-performance ?)
• {away} : xG moyen, buts réels
• Domination : possession moyenne

🧱 **Défense & pressing**
• {home} : clean sheets, xGA
• {away} : clean sheets, xGA
• Faiblesses : coups de pied arrêtés ? contres ?

🕒 **Stats par mi-temps**
• % de buts en 1ère et 2ème mi-temps
• Moment clé (ex : marque souvent entre 75' et 90')

⚔️ **Historique (H2H)**
• 5 derniers : V-N-D
• Moyenne de buts
• Statistique marquante

👥 **Joueurs clés**
• Forme récente, buts/passes décisives, note moyenne

💡 **Le saviez-vous ?**
Une statistique insolite ou une série en cours"""
