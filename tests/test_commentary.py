import pytest

from domain.cache import ResponseCache
from domain.commentary import CommentaryService
from domain.errors import InvalidRequest, MalformedUpstreamResponse
from domain.models import CommentaryRequest, CommentaryType

from conftest import FakeClock, FakeLLM, make_client


def request(**kwargs) -> CommentaryRequest:
    fields = {
        "recipe_title": "Garlic Chicken Rice",
        "ingredients": ["chicken", "rice", "garlic"],
        "instructions": "Boil the rice. Fry the chicken with garlic.",
    }
    fields.update(kwargs)
    return CommentaryRequest(**fields)


@pytest.mark.asyncio
async def test_commentary() -> None:
    llm = FakeLLM("  This rice is RAW! Cook it properly, you donkey.  ")
    service = CommentaryService(make_client(llm))

    got = await service.generate(request())

    assert got == {"commentary": "This rice is RAW! Cook it properly, you donkey."}
    sent = llm.requests[0]
    assert "Gordon Ramsay" in sent.prompt
    assert "Title: Garlic Chicken Rice" in sent.prompt
    assert sent.temperature == 0.8
    assert sent.max_output_tokens == 1024


@pytest.mark.asyncio
async def test_twist() -> None:
    llm = FakeLLM("1. Add lemongrass.\n2. Use brown rice.\n3. Grill it.")
    service = CommentaryService(make_client(llm))

    got = await service.generate(request(type=CommentaryType.twist))

    assert list(got) == ["twists"]
    assert llm.requests[0].temperature == 0.7
    assert "3 creative twists" in llm.requests[0].prompt


@pytest.mark.parametrize(
    "overrides",
    (
        {"recipe_title": "  "},
        {"ingredients": []},
        {"instructions": ""},
        {"instructions": "Cook it."},
    ),
)
@pytest.mark.asyncio
async def test_invalid_requests_make_no_call(overrides: dict) -> None:
    llm = FakeLLM("A perfectly fine commentary.")
    service = CommentaryService(make_client(llm))
    with pytest.raises(InvalidRequest):
        await service.generate(request(**overrides))
    assert llm.requests == []


@pytest.mark.asyncio
async def test_short_reply_is_malformed() -> None:
    service = CommentaryService(make_client(FakeLLM("Meh.")))
    with pytest.raises(MalformedUpstreamResponse):
        await service.generate(request())


@pytest.mark.asyncio
async def test_commentary_is_cached() -> None:
    llm = FakeLLM("Season it properly next time.")
    cache = ResponseCache(ttl=600, clock=FakeClock())
    service = CommentaryService(make_client(llm), cache=cache)

    first = await service.generate(request())
    second = await service.generate(
        request(ingredients=["garlic", "chicken", "rice"])
    )
    await service.generate(request(type=CommentaryType.twist))

    assert first == second
    assert len(llm.requests) == 2
