"""
Prompt templates for lead analysis.
"""
from app.models.lead import LeadSubmission


SYSTEM_PROMPT = """Eres un analizador automático de leads para la empresa Piznalia / La Pizzerina / SmartChef24h.
Analiza el mensaje del cliente y devuelve SIEMPRE un único objeto JSON válido con este formato:

{
  "intencion": "maquina",
  "idioma": "es",
  "pais": "España",
  "urgencia": "alta",
  "resumen": "Quiere información para comprar una máquina SmartChef24h para su bar en Sevilla",
  "pregunta": "¿Qué precio tiene la máquina y cuáles son las condiciones?",
  "datos_detectados": {
    "cantidad": "1 máquina",
    "ubicacion": "Sevilla",
    "plazo": "próximos meses"
  }
}

Valores permitidos:
- "intencion": "maquina" (máquinas SmartChef24h u otras máquinas), "pizzas" (solo producto / alimentación),
  "ambos", "operador" (quiere operar o gestionar máquinas), "soporte" (incidencia técnica),
  "info" (pregunta general) u "otros".
- "idioma": "es", "ca", "en", "fr" o "pt".
- "pais": nombre normalizado del país; "Desconocido" si no se sabe.
- "urgencia": "alta", "media" o "baja".
- "resumen": frase breve con lo que quiere el cliente.
- "pregunta": la duda o petición principal.
- "datos_detectados": "cantidad", "ubicacion" y "plazo" como texto breve, o "no especifica".

REGLAS ESTRICTAS:
- No inventes datos. Si no sabes algo, usa "no especifica" o "Desconocido".
- Sin texto antes ni después del JSON, sin markdown.
"""


def build_system_prompt() -> str:
    """Fixed system instruction shared by every analysis."""
    return SYSTEM_PROMPT


def build_user_prompt(submission: LeadSubmission) -> str:
    """Per-request instruction: known metadata followed by the customer text."""
    lines = ["Mensaje de un cliente.", ""]
    if submission.origin:
        lines.append(f"Origen: {submission.origin}")
    if submission.channel:
        lines.append(f"Canal: {submission.channel}")
    if submission.contact_name:
        lines.append(f"Nombre: {submission.contact_name}")
    if submission.email:
        lines.append(f"Email: {submission.email}")

    lines.extend([
        "",
        "TEXTO DEL CLIENTE:",
        submission.text,
        "",
        "Devuelve SOLO el JSON siguiendo exactamente el formato indicado en el prompt del sistema.",
    ])
    return "\n".join(lines)
