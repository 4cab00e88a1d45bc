"""
Shared fakes for the extraction pipeline tests.
"""

import json
import re

import pytest

from cartllm_core.document import Document, ElementSnapshot, Selector
from cartllm_core.scanner import Candidate


class FakeSession:
    def __init__(self, model, system_prompt, options):
        self.model = model
        self.system_prompt = system_prompt
        self.options = options
        self.prompts = []
        self.destroy_calls = 0

    async def prompt(self, text):
        self.prompts.append(text)
        self.model.prompts.append(text)
        reply = self.model.replies.pop(0) if self.model.replies else self.model.default_reply
        if callable(reply):
            reply = reply(text)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def destroy(self):
        self.destroy_calls += 1


class FakeModel:
    """Stands in for a LanguageModel; replies are consumed in order."""

    def __init__(self, replies=None, status="available", default_reply="{}"):
        self.replies = list(replies or [])
        self.status = status
        self.default_reply = default_reply
        self.sessions = []
        self.prompts = []

    async def availability(self, **options):
        if isinstance(self.status, Exception):
            raise self.status
        return self.status

    async def create(self, system_prompt, **options):
        session = FakeSession(self, system_prompt, options)
        self.sessions.append(session)
        return session


class FakeDocument(Document):
    def __init__(self, elements=None, url="", title=""):
        self._elements = list(elements or [])
        self.url = url
        self.title = title
        self.resolved = []

    async def elements(self, tags=None):
        return list(self._elements)

    async def resolve(self, selector):
        self.resolved.append(selector.selector)
        for element in self._elements:
            if element.selector == selector.selector:
                return element
        return None

    async def page_info(self):
        return {"url": self.url, "title": self.title}


def snapshot(text, selector, tag="div", id=None, class_name=None):
    return ElementSnapshot(tag_name=tag, text=text, selector=selector, id=id, class_name=class_name)


def candidate(text, selector, tag="div"):
    return Candidate(selector=Selector(selector=selector, tag_name=tag), text=text, tag=tag)


def reply(index, amount, confidence=0.9, text="", explanation="test"):
    return json.dumps({
        "index": index,
        "text": text,
        "amount": amount,
        "confidence": confidence,
        "explanation": explanation,
    })


def containers_in(prompt):
    """Parse the container list the analyzer embedded in a prompt."""
    match = re.search(r"CONTAINERS TO ANALYZE:\n(\[.*?\n\])", prompt, re.S)
    return json.loads(match.group(1)) if match else []


def pick_containing(keyword, confidence=0.95):
    """Reply function choosing the first container whose text has keyword."""
    def choose(prompt):
        for item in containers_in(prompt):
            if keyword.lower() in item["text"].lower():
                amount = float(re.search(r"\$([\d,]+\.\d{2})", item["text"]).group(1).replace(",", ""))
                return reply(item["index"], amount, confidence, item["text"])
        return json.dumps({"index": 0, "amount": None, "confidence": 0.1})
    return choose


CHECKOUT_HTML = """
<html>
<head><title>Checkout - Example Shop</title><script>var total = "$999.99 total";</script></head>
<body>
<div class="cart">
  <div class="row"><span>Subtotal</span><span>$40.00</span></div>
  <div class="row"><span>Shipping</span><span>Free</span></div>
  <div class="row grand"><span>Grand Total</span><span>$43.00</span></div>
</div>
<p class="note">Questions about your order? Call us.</p>
</body>
</html>
"""


@pytest.fixture
def checkout_html():
    return CHECKOUT_HTML
