"""
Vision Prompts

Prompts shared by every vision provider. Both ask for a single JSON object.
"""

SYSTEM_PROMPT = (
    "You are a pharmaceutical packaging analyst. You report only what is "
    "visible in the photograph and answer with a single JSON object."
)

EXTRACTION_PROMPT = """Extract all textual information from this medicine packaging or pill.
Focus on the drug name, the strength/dosage, any imprint or code printed on the pills or
the box, and the manufacturer. Be precise and copy text exactly as printed.

Answer with this JSON object and nothing else:
{
  "name": "product or drug name, or null",
  "strength": "strength such as 500 mg, or null",
  "markings": "imprint or codes printed on the pill or packaging, or null",
  "manufacturer": "manufacturer name, or null"
}
Use null for anything you cannot read. Do not guess."""

INSPECTION_PROMPT = """Analyze the visual integrity of this medicine packaging or pill.
Check for blurry printing, misaligned logos, incorrect fonts, spelling mistakes, inconsistent
colors and tampered safety seals. Describe the pill's physical appearance based ONLY on what
you see.

Answer with this JSON object and nothing else:
{
  "color": "observed pill color, or null",
  "shape": "observed pill shape (round, oval, oblong, ...), or null",
  "surface_markings": "imprint visible on the pill surface, or null",
  "quality_score": 0-100 confidence in the print and packaging integrity,
  "red_flags": ["each visual anomaly found, empty list if none"]
}"""
