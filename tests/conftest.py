"""
Shared fixtures: a throwaway SQLite database per test, a scripted model
client and an in-memory Razorpay API behind httpx.MockTransport.
"""

import io
import json
import uuid

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from bloodlens.core.config import Settings
from bloodlens.core.container import build_services
from bloodlens.core.database import init_db
from bloodlens.main import create_app
from bloodlens.services.payment_gateway import RazorpayGateway

RAZORPAY_SECRET = "rzp_test_secret"

SAMPLE_ANALYSIS = {
    "summary": "Mild vitamin D deficiency, everything else in range.",
    "recommendation": "Get more sunlight and recheck in 3 months.",
    "overallScore": 8,
    "riskLevel": "low",
    "tests": [
        {
            "test": "Vitamin D",
            "value": 18,
            "unit": "ng/mL",
            "range": "30-100",
            "flag": "low",
            "explanation": "Below the recommended range.",
            "rootCauses": "Low sun exposure",
            "advice": "Supplement after talking to your doctor.",
        },
        {
            "test": "Hemoglobin",
            "value": 14.2,
            "unit": "g/dL",
            "range": "13-17",
            "flag": "normal",
            "explanation": "Healthy.",
            "rootCauses": "",
            "advice": "",
        },
    ],
    "healthGoals": ["Raise vitamin D above 30 ng/mL"],
    "nutrition": {
        "focus": "Vitamin D rich foods",
        "breakfast": ["Eggs"],
        "lunch": ["Salmon"],
        "dinner": ["Mushrooms"],
        "snacks": ["Fortified yogurt"],
        "avoid": [],
    },
    "lifestyle": {"exercise": "Walk outdoors", "sleep": "7-8 hours", "stress": "Breathing exercises"},
    "supplements": [{"name": "Vitamin D3", "reason": "Deficiency", "dose": "1000 IU", "duration": "3 months"}],
    "futurePredictions": [{"condition": "Osteoporosis", "risk": "low", "timeframe": "10 years", "prevention": "D3"}],
    "medicationAlerts": [],
}


class FakeAI:
    """Stands in for AIService; replies are scripted per test"""

    def __init__(self):
        self.analysis_reply = json.dumps(SAMPLE_ANALYSIS)
        self.analysis_error = None
        self.chat_reply = "Your vitamin D is a little low."
        self.during_analysis = None
        self.analysis_calls = []
        self.chat_calls = []

    async def analyze_report(self, image_data_url, extracted_text=None, patient_context=""):
        self.analysis_calls.append({
            "image_data_url": image_data_url,
            "extracted_text": extracted_text,
            "patient_context": patient_context,
        })
        if self.during_analysis is not None:
            await self.during_analysis()
        if self.analysis_error is not None:
            raise self.analysis_error
        return self.analysis_reply

    async def chat(self, system_prompt, messages):
        self.chat_calls.append({"system_prompt": system_prompt, "messages": messages})
        return self.chat_reply


class FakeRazorpay:
    """Minimal Razorpay subscriptions API"""

    def __init__(self, plans=("plan_pro",)):
        self.plans = set(plans)
        self.subscriptions = {}

    def add_subscription(self, status="active", notes=None) -> str:
        sub_id = f"sub_{uuid.uuid4().hex[:14]}"
        self.subscriptions[sub_id] = {
            "id": sub_id,
            "status": status,
            "notes": notes if notes is not None else [],
        }
        return sub_id

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path == "/v1/subscriptions":
            body = json.loads(request.content)
            if body["plan_id"] not in self.plans:
                return httpx.Response(400, json={"error": {
                    "code": "BAD_REQUEST_ERROR",
                    "description": "The id provided does not exist",
                }})
            sub_id = self.add_subscription(status="created", notes=body.get("notes"))
            self.subscriptions[sub_id]["plan_id"] = body["plan_id"]
            self.subscriptions[sub_id]["total_count"] = body["total_count"]
            return httpx.Response(200, json=self.subscriptions[sub_id])

        if request.method == "GET" and path.startswith("/v1/subscriptions/"):
            sub_id = path.rsplit("/", 1)[-1]
            if sub_id not in self.subscriptions:
                return httpx.Response(400, json={"error": {
                    "code": "BAD_REQUEST_ERROR",
                    "description": "The id provided does not exist",
                }})
            return httpx.Response(200, json=self.subscriptions[sub_id])

        return httpx.Response(404, json={"error": {"code": "NOT_FOUND"}})


def make_image(width: int = 1200, height: int = 900, fmt: str = "JPEG", mode: str = "RGB") -> bytes:
    image = Image.new(mode, (width, height), color="white" if mode == "RGB" else (255, 255, 255, 128))
    out = io.BytesIO()
    image.save(out, format=fmt)
    return out.getvalue()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        JWT_SECRET_KEY="test-secret",
        RAZORPAY_KEY_ID="rzp_test_key",
        RAZORPAY_KEY_SECRET=RAZORPAY_SECRET,
        PUBLIC_BASE_URL="https://bloodlens.test",
        FIREBASE_PROJECT_ID="",
    )


@pytest.fixture
def fake_ai():
    return FakeAI()


@pytest.fixture
def razorpay():
    return FakeRazorpay()


@pytest.fixture
def services(settings, fake_ai, razorpay):
    gateway = RazorpayGateway(
        settings.RAZORPAY_KEY_ID,
        settings.RAZORPAY_KEY_SECRET,
        transport=httpx.MockTransport(razorpay.handle),
    )
    return build_services(settings, ai=fake_ai, gateway=gateway)


@pytest.fixture
async def db(services):
    """Services with the schema created, for tests that skip the HTTP layer"""
    await init_db(services.engine)
    yield services
    await services.engine.dispose()


@pytest.fixture
def client(settings, services):
    with TestClient(create_app(settings, services)) as test_client:
        yield test_client


@pytest.fixture
def token(services):
    return services.verifier.issue("user-1", "user1@example.com")
