"""Shared fixtures: a scripted content provider and a fake clock."""

import asyncio
import random

import pytest

from gridscape import ContentProvider, IdeaCanvas, MainContent, NodeStore, Point


class FakeProvider(ContentProvider):
    """Deterministic provider that records every call.

    Set ``gates[stage]`` to an ``asyncio.Event`` to hold a stage until the
    test releases it. Set ``*_error`` to make a stage raise.
    """

    def __init__(self):
        self.main_calls = []
        self.suggestion_calls = []
        self.art_calls = []
        self.concept_calls = []
        self.suggestion_texts = ["Trace the origins", "Follow the money", "Ask a philosopher"]
        self.terms = ["Alpha", "beta gamma"]
        self.concept_point = Point(0.25, -0.5)
        self.main_error = None
        self.suggestion_error = None
        self.art_error = None
        self.concept_error = None
        self.gates = {}
        self._entries = 0

    async def _pass(self, stage):
        gate = self.gates.get(stage)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)

    async def main_content(self, labels, point, topic, history):
        self.main_calls.append((labels, point, topic, list(history)))
        await self._pass("main")
        if self.main_error is not None:
            raise self.main_error
        self._entries += 1
        return MainContent(
            text=f"{topic} entry {self._entries}: Alpha meets Beta Gamma.",
            bridge=f"bridge {self._entries}" if history else None,
            terms=list(self.terms),
        )

    async def suggestions(self, topic, text):
        self.suggestion_calls.append((topic, text))
        await self._pass("suggestions")
        if self.suggestion_error is not None:
            raise self.suggestion_error
        return list(self.suggestion_texts)

    async def art(self, topic, text):
        self.art_calls.append((topic, text))
        await self._pass("art")
        if self.art_error is not None:
            raise self.art_error
        return f"[art for {topic}]"

    async def point_for_concept(self, name):
        self.concept_calls.append(name)
        await self._pass("concept")
        if self.concept_error is not None:
            raise self.concept_error
        return self.concept_point


class FakeClock:
    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return NodeStore(clock=clock)


@pytest.fixture
def canvas(provider, clock):
    return IdeaCanvas(provider, rng=random.Random(7), clock=clock)
