import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from mhk.config import get_cors_origins, get_key_id
from mhk.crypto.errors import KnapsackError
from mhk.crypto.knapsack import KeyPair, decrypt, encrypt, format_ciphertext, generate_keypair

logger = logging.getLogger(__name__)

# One key pair per process; never mutated, so handlers share it freely.
SESSION_KEY_ID = get_key_id()
_SESSION_KEYPAIR = generate_keypair()


def get_session_keypair() -> KeyPair:
    return _SESSION_KEYPAIR


@asynccontextmanager
async def lifespan(app: FastAPI):
    keypair = get_session_keypair()
    logger.info("knapsack API ready: key %s, %d byte messages", SESSION_KEY_ID, keypair.public.max_chars)
    yield


app = FastAPI(
    title="Merkle-Hellman Knapsack API",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Security: CORS ───────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    allow_credentials=False,
)


# ── Security: HTTP headers ───────────────────────────────────
@app.middleware("http")
async def security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store"
    return response


class EncryptRequest(BaseModel):
    message: str = Field(description="UTF-8 text, at most max_chars bytes once encoded")


class DecryptRequest(BaseModel):
    ciphertext: str = Field(description="Decimal ciphertext produced by /crypto/encrypt")


@app.get("/health")
async def health() -> dict:
    """Liveness check; also reports the active message bound."""
    return {
        "status": "ok",
        "key_id": SESSION_KEY_ID,
        "max_chars": get_session_keypair().public.max_chars,
    }


@app.get("/crypto/pubkey")
async def get_public_key():
    """Return the session public knapsack sequence (decimal strings)."""
    pub = get_session_keypair().public
    return {
        "key_id": SESSION_KEY_ID,
        "max_chars": pub.max_chars,
        "b": [format_ciphertext(bi) for bi in pub.b],
    }


@app.post("/crypto/encrypt")
async def encrypt_message(payload: EncryptRequest):
    """Encrypt a message with the session public key."""
    pub = get_session_keypair().public
    try:
        ciphertext = encrypt(pub, payload.message)
    except KnapsackError as e:
        logger.info("encrypt rejected: %s", type(e).__name__)
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "key_id": SESSION_KEY_ID,
        "bytes": len(payload.message.encode("utf-8")),
        "ciphertext": format_ciphertext(ciphertext),
    }


@app.post("/crypto/decrypt")
async def decrypt_message(payload: DecryptRequest):
    """
    Decrypt with the session private key.

    There is no integrity tag: a well-formed ciphertext that was not
    produced under this key decrypts to meaningless text, not an error.
    """
    priv = get_session_keypair().private
    try:
        message = decrypt(priv, payload.ciphertext)
    except KnapsackError as e:
        logger.info("decrypt rejected: %s", type(e).__name__)
        raise HTTPException(status_code=400, detail=str(e))
    return {"key_id": SESSION_KEY_ID, "message": message}


@app.get("/demo", response_class=HTMLResponse)
async def demo_page() -> HTMLResponse:
        """Lightweight HTML page to exercise the API endpoints from a browser."""
        html = """
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8" />
            <meta name="viewport" content="width=device-width, initial-scale=1.0" />
            <title>Knapsack API Demo</title>
            <style>
                :root { --bg: #0f172a; --panel: #111827; --text: #e5e7eb; --muted: #94a3b8; }
                * { box-sizing: border-box; }
                body { margin: 0; padding: 32px; font-family: "Segoe UI", system-ui, sans-serif; background: var(--bg); color: var(--text); }
                h1 { margin: 0 0 24px; font-size: 26px; }
                .grid { display: grid; gap: 16px; grid-template-columns: repeat(auto-fit, minmax(280px, 1fr)); }
                .card { background: var(--panel); border: 1px solid #1f2937; border-radius: 12px; padding: 16px; }
                .card h2 { margin: 0 0 8px; font-size: 18px; }
                .card p { margin: 0 0 12px; color: var(--muted); font-size: 14px; }
                textarea, button { width: 100%; padding: 10px; border-radius: 8px; border: 1px solid #1f2937; background: #0b1324; color: var(--text); font-size: 14px; }
                textarea { min-height: 70px; resize: vertical; }
                button { cursor: pointer; border: none; background: #22c55e; color: #0b1324; font-weight: 700; margin-top: 8px; }
                pre { background: #0b1324; border: 1px solid #1f2937; border-radius: 8px; padding: 10px; font-size: 13px; white-space: pre-wrap; word-break: break-all; }
            </style>
        </head>
        <body>
            <h1>Merkle-Hellman Knapsack Demo</h1>
            <div class="grid">
                <div class="card">
                    <h2>Encrypt</h2>
                    <p>Encrypt a short message with the session public key.</p>
                    <textarea id="message" spellcheck="false">Hello, knapsack!</textarea>
                    <button onclick="encryptMessage()">Encrypt</button>
                </div>
                <div class="card">
                    <h2>Decrypt</h2>
                    <p>Paste a decimal ciphertext.</p>
                    <textarea id="ciphertext" spellcheck="false"></textarea>
                    <button onclick="decryptMessage()">Decrypt</button>
                </div>
                <div class="card">
                    <h2>Public key</h2>
                    <p>Show the public knapsack sequence.</p>
                    <button onclick="callEndpoint('GET', '/crypto/pubkey')">Load</button>
                </div>
            </div>
            <div class="card" style="margin-top:16px;">
                <h2>Response</h2>
                <pre id="output">Ready.</pre>
            </div>

            <script>
                const base = window.location.origin;
                const output = document.getElementById('output');

                async function callEndpoint(method, path, body) {
                    try {
                        const res = await fetch(base + path, {
                            method,
                            headers: body ? { 'Content-Type': 'application/json' } : undefined,
                            body: body ? JSON.stringify(body) : undefined,
                        });
                        const parsed = await res.json();
                        output.textContent = JSON.stringify(parsed, null, 2);
                        return parsed;
                    } catch (err) {
                        output.textContent = 'Error: ' + err;
                    }
                }

                async function encryptMessage() {
                    const body = await callEndpoint('POST', '/crypto/encrypt', {
                        message: document.getElementById('message').value,
                    });
                    if (body && body.ciphertext) {
                        document.getElementById('ciphertext').value = body.ciphertext;
                    }
                }

                function decryptMessage() {
                    callEndpoint('POST', '/crypto/decrypt', {
                        ciphertext: document.getElementById('ciphertext').value,
                    });
                }
            </script>
        </body>
        </html>
        """
        return HTMLResponse(content=html)
