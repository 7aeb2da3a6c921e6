# verifier/render.py
# HTML lato server: pagina con i quattro form e card del risultato.
from html import escape
from typing import Optional

from verifier.models.schema import (
    AnalysisKind,
    AnalysisOk,
    ExtractionFailed,
    UpstreamFailed,
    Verdict,
)

VERDICT_LABELS = {
    Verdict.AI: ("Probabilmente IA", "ai"),
    Verdict.HUMAN: ("Probabilmente umano", "human"),
    Verdict.MIXED: ("Incerto", "mixed"),
}

KIND_LABELS = {
    AnalysisKind.URL: "Link",
    AnalysisKind.IMAGE: "Immagine",
    AnalysisKind.VIDEO: "Video",
    AnalysisKind.TEXT: "Testo",
}

STYLE = """
body { font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; margin: 40px; max-width: 720px; }
form { display: grid; gap: 10px; margin-bottom: 18px; padding: 14px; border: 1px solid #ddd; border-radius: 10px; }
input, textarea, button { padding: 10px; font-size: 16px; }
.hint { color: #555; }
.error { color: #b00020; }
.card { padding: 18px; border-radius: 12px; border: 2px solid #999; margin-top: 24px; }
.card.ai { border-color: #e11d48; } .card.human { border-color: #059669; }
.card.mixed { border-color: #ca8a04; } .card.failed { border-color: #555; background: #f4f4f4; }
.score { font-size: 24px; font-weight: bold; float: right; }
"""


def _url_form(value: str) -> str:
    return f"""
  <form action="/verify" method="post" enctype="multipart/form-data">
    <input type="hidden" name="kind" value="URL">
    <label>Link<br><input type="url" name="url" placeholder="https://..." value="{escape(value)}" style="width:95%"></label>
    <button type="submit">Verifica link</button>
  </form>"""


def _text_form(value: str) -> str:
    return f"""
  <form action="/verify" method="post" enctype="multipart/form-data">
    <input type="hidden" name="kind" value="TEXT">
    <label>Testo<br><textarea name="text" rows="6" placeholder="Incolla qui il testo..." style="width:95%">{escape(value)}</textarea></label>
    <button type="submit">Verifica testo</button>
  </form>"""


def _file_form(kind: AnalysisKind, accept: str, max_mb: float) -> str:
    label = KIND_LABELS[kind]
    return f"""
  <form action="/verify" method="post" enctype="multipart/form-data">
    <input type="hidden" name="kind" value="{kind.value}">
    <label>{label} (max {max_mb:g}MB)<br><input type="file" name="file" accept="{accept}"></label>
    <button type="submit">Verifica {label.lower()}</button>
  </form>"""


def _source_item(uri: str, title: str) -> str:
    # solo http(s) diventa un link cliccabile
    if uri.lower().startswith(("http://", "https://")):
        return f'<li><a href="{escape(uri)}" target="_blank" rel="noopener noreferrer">{escape(title)}</a></li>'
    return f"<li>{escape(title)} ({escape(uri)})</li>"


def render_result(outcome) -> str:
    if isinstance(outcome, AnalysisOk):
        res = outcome.result
        label, css = VERDICT_LABELS[res.verdict]
        indicators = "".join(f"<li>{escape(i)}</li>" for i in res.indicators) or "<li><em>nessuno</em></li>"
        sources_html = ""
        if res.sources:
            links = "".join(_source_item(s.uri, s.title) for s in res.sources)
            sources_html = f"<h3>Fonti</h3><ul>{links}</ul>"
        return f"""
  <div class="card {css}" data-status="ok" data-verdict="{escape(res.verdict.value)}">
    <span class="score">{res.confidence_score}%</span>
    <h2>{label}</h2>
    <p>{escape(res.reasoning)}</p>
    <h3>Indicatori</h3><ul>{indicators}</ul>
    {sources_html}
  </div>"""

    if isinstance(outcome, ExtractionFailed):
        title = "Analisi non riuscita: risposta del modello non valida"
        detail = escape(outcome.reason)
    elif isinstance(outcome, UpstreamFailed):
        title = "Analisi non riuscita: tempo scaduto" if outcome.timed_out else "Analisi non riuscita: servizio non raggiungibile"
        detail = escape(outcome.reason)
    else:
        raise TypeError(f"esito sconosciuto: {type(outcome).__name__}")
    # nessun verdetto né punteggio: un errore non è un "Incerto"
    return f"""
  <div class="card failed" data-status="{outcome.status}">
    <h2>{title}</h2>
    <p class="hint">{detail}</p>
    <p class="hint">Nessun verdetto disponibile. Riprova tra poco.</p>
  </div>"""


def render_page(max_upload_bytes: int, outcome=None, error: Optional[str] = None,
                url: str = "", text: str = "") -> str:
    max_mb = max_upload_bytes / (1024 * 1024)
    error_html = f'<p class="error" role="alert">{escape(error)}</p>' if error else ""
    result_html = render_result(outcome) if outcome is not None else ""
    return f"""<!doctype html>
<html lang="it">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>Verificatore IA</title>
  <style>{STYLE}</style>
</head>
<body>
  <h1>Verificatore IA</h1>
  <p class="hint">Realtà o finzione? Inserisci un <b>link</b>, del <b>testo</b>, un'<b>immagine</b> o un <b>video</b>.</p>
  {_url_form(url)}
  {_file_form(AnalysisKind.IMAGE, "image/*", max_mb)}
  {_file_form(AnalysisKind.VIDEO, "video/*", max_mb)}
  {_text_form(text)}
  {error_html}
  {result_html}
  <p class="hint">API JSON: <code>POST /api/analyze/url</code>, <code>/api/analyze/text</code>, <code>/api/analyze/image</code>, <code>/api/analyze/video</code></p>
</body>
</html>"""
