"""End-to-end behaviour of the memory engine."""

import asyncio

from ragmemory import (
    ContextManager,
    EngineState,
    Fact,
    ImageGeneration,
    InMemoryKeyValueStore,
    MemoryEngineConfig,
    UserMessage,
)


def test_user_message_is_recorded_and_searchable(engine):
    async def scenario():
        await engine.add_user_message("I love cats")
        return await engine.vector_store.search("cats", 3)

    results = asyncio.run(scenario())

    assert len(results) == 1
    assert results[0].document.text == "I love cats"
    assert results[0].similarity > 0.1
    assert [item.content for item in engine.get_recent_conversation()] == ["I love cats"]


def test_operations_initialize_lazily(engine):
    assert engine.state == EngineState.UNINITIALIZED

    asyncio.run(engine.add_user_message("hello world"))

    assert engine.state == EngineState.READY


def test_every_mutation_persists_state(engine, storage):
    asyncio.run(engine.add_user_message("I love cats"))

    assert set(storage.data) == set(engine.storage_keys)
    assert engine.storage_keys == (
        "rag_vectors",
        "rag_documents",
        "rag_short_term_memory",
        "rag_long_term_memory",
    )


def test_repeated_image_prompt_reaches_long_term_once(engine):
    async def scenario():
        await engine.add_generated_image("img://1", "a red bicycle")
        await engine.add_generated_image("img://2", "a red bicycle")

    asyncio.run(scenario())

    images = [item for item in engine.long_term_memory if isinstance(item, ImageGeneration)]
    assert len(images) == 1
    assert images[0].image_ref == "img://1"
    assert engine.get_memory_stats().vector_count == 2


def test_image_echoing_earlier_conversation_is_not_novel(engine):
    async def scenario():
        await engine.add_user_message("please draw a red bicycle")
        await engine.add_generated_image("img://1", "a red bicycle")

    asyncio.run(scenario())

    assert engine.long_term_memory == ()
    assert engine.get_memory_stats().vector_count == 2


def test_generated_images_stay_out_of_conversation(engine):
    asyncio.run(engine.add_generated_image("img://1", "a red bicycle"))
    assert engine.get_recent_conversation() == []


def test_assistant_metadata_is_kept(engine):
    asyncio.run(engine.add_assistant_response("Here you go", {"model": "llama-3"}))

    assert engine.short_term_memory[0].metadata == {"model": "llama-3"}
    assert engine.vector_store.documents[0].metadata.extra == {"model": "llama-3"}


def test_recent_conversation_defaults_to_ten(engine):
    async def scenario():
        for i in range(15):
            await engine.add_user_message(f"message number {i}")

    asyncio.run(scenario())

    recent = engine.get_recent_conversation()
    assert len(recent) == 10
    assert recent[0].content == "message number 5"
    assert len(engine.get_recent_conversation(3)) == 3


def test_short_term_cap_applies_to_whole_conversation(engine):
    async def scenario():
        for i in range(11):
            await engine.add_user_message(f"question {i}")
            await engine.add_assistant_response(f"answer {i}")

    asyncio.run(scenario())

    log = engine.short_term_memory
    assert len(log) == 20
    assert isinstance(log[0], UserMessage)
    assert log[0].content == "question 1"
    assert log[-1].content == "answer 10"
    assert engine.get_memory_stats().document_count == 22


def test_long_term_cap(engine):
    async def scenario():
        for i in range(51):
            await engine.add_to_long_term_memory(f"fact {i}")

    asyncio.run(scenario())

    assert len(engine.long_term_memory) == 50
    assert engine.long_term_memory[0].content == "fact 1"


def test_remember_image_preference(engine):
    asyncio.run(engine.remember_image_preference("watercolor foxes"))

    fact = engine.long_term_memory[-1]
    assert isinstance(fact, Fact)
    assert fact.content == "User seems to like images of: watercolor foxes"


def test_relevant_context_lists_matches_and_reminders(engine):
    async def scenario():
        await engine.add_generated_image("img://1", "cats playing chess")
        await engine.add_user_message("Can you draw cats playing chess?")
        await engine.add_assistant_response("Sure, here are cats playing chess")
        return await engine.get_relevant_context("cats chess")

    context = asyncio.run(scenario())

    assert context.startswith("Here are some relevant past interactions:\n\n")
    assert 'User previously asked: "Can you draw cats playing chess?"' in context
    assert 'You previously responded: "Sure, here are cats playing chess"' in context
    assert 'User asked to generate: "cats playing chess"\n   You generated an image for them.' in context
    assert "Important things to remember:\n\n" in context
    assert '- User has previously generated images with the prompt: "cats playing chess"\n' in context


def test_relevant_context_is_empty_when_nothing_matches(engine):
    async def scenario():
        await engine.add_user_message("I love cats")
        await engine.add_to_long_term_memory("User is vegetarian")
        return await engine.get_relevant_context("quantum chromodynamics")

    assert asyncio.run(scenario()) == ""


def test_relevant_context_on_fresh_engine(engine):
    assert asyncio.run(engine.get_relevant_context("anything at all")) == ""


def test_reminders_show_five_most_recent_images(engine):
    prompts = [
        "sunset over the ocean",
        "castle made of glass",
        "robot tending a garden",
        "lighthouse during storm",
        "desert caravan at night",
        "owl reading newspaper",
    ]

    async def scenario():
        for i, prompt in enumerate(prompts):
            await engine.add_generated_image(f"img://{i}", prompt)
            await engine.add_to_long_term_memory(f"noted preference {i}")
        return await engine.get_relevant_context("zzz")

    context = asyncio.run(scenario())

    assert context.startswith("Important things to remember:\n\n")
    assert prompts[0] not in context
    for prompt in prompts[1:]:
        assert prompt in context


def test_state_survives_restart(storage):
    async def scenario():
        first = ContextManager(storage=storage)
        await first.add_user_message("I love cats")
        await first.add_assistant_response("Cats are wonderful companions")
        await first.add_generated_image("img://1", "a cat astronaut")
        await first.add_to_long_term_memory("User owns two cats")

        second = ContextManager(storage=storage)
        await second.initialize()
        return first, second

    first, second = asyncio.run(scenario())

    assert second.vector_store.vectors == first.vector_store.vectors
    assert second.vector_store.documents == first.vector_store.documents
    assert second.short_term_memory == first.short_term_memory
    assert second.long_term_memory == first.long_term_memory
    assert isinstance(second.short_term_memory[0], UserMessage)


def test_clear_all_then_initialize_is_empty(engine, storage):
    async def scenario():
        await engine.add_user_message("I love cats")
        await engine.add_generated_image("img://1", "a red bicycle")
        await engine.add_to_long_term_memory("User owns two cats")
        await engine.clear_all()
        assert engine.state == EngineState.UNINITIALIZED
        await engine.initialize()

    asyncio.run(scenario())

    stats = engine.get_memory_stats()
    assert stats.short_term_count == 0
    assert stats.long_term_count == 0
    assert stats.vector_count == 0
    assert stats.document_count == 0
    assert storage.data == {}
    assert engine.state == EngineState.READY


def test_clear_all_also_empties_a_fresh_instance(storage):
    async def scenario():
        first = ContextManager(storage=storage)
        await first.add_user_message("I love cats")
        await first.clear_all()

        second = ContextManager(storage=storage)
        await second.initialize()
        return second

    second = asyncio.run(scenario())
    assert second.get_memory_stats().document_count == 0


def test_concurrent_callers_share_one_initialization(slow_storage):
    engine = ContextManager(storage=slow_storage)

    async def scenario():
        await asyncio.gather(
            engine.initialize(),
            engine.add_user_message("first message here"),
            engine.add_user_message("second message here"),
            engine.get_relevant_context("message"),
        )

    asyncio.run(scenario())

    # One load reads each of the four keys exactly once
    assert slow_storage.get_calls == 4
    assert len(engine.short_term_memory) == 2
    assert engine.get_memory_stats().document_count == 2


def test_initialization_does_not_overwrite_new_state(slow_storage):
    async def scenario():
        seed = ContextManager(storage=slow_storage)
        await seed.add_user_message("old persisted message")

        engine = ContextManager(storage=slow_storage)
        await asyncio.gather(
            engine.add_user_message("new message one"),
            engine.add_user_message("new message two"),
        )
        return engine

    engine = asyncio.run(scenario())

    contents = [item.content for item in engine.short_term_memory]
    assert contents[0] == "old persisted message"
    assert sorted(contents[1:]) == ["new message one", "new message two"]


def test_persistence_failures_do_not_break_the_session(failing_storage):
    engine = ContextManager(storage=failing_storage)

    async def scenario():
        await engine.add_user_message("I love cats")
        await engine.add_generated_image("img://1", "a red bicycle")
        await engine.add_to_long_term_memory("User owns two cats")
        context = await engine.get_relevant_context("cats")
        await engine.clear_all()
        return context

    context = asyncio.run(scenario())

    assert 'User previously asked: "I love cats"' in context
    assert engine.metrics.snapshot().persistence_failures > 0
    assert engine.get_memory_stats().document_count == 0


def test_rejected_writes_do_not_break_the_session(rejecting_storage):
    engine = ContextManager(storage=rejecting_storage)

    asyncio.run(engine.add_user_message("I love cats"))

    assert engine.get_memory_stats().short_term_count == 1


def test_config_capacities_and_prefix(storage):
    config = MemoryEngineConfig(short_term_capacity=2, long_term_capacity=1, storage_key_prefix="bob:")
    engine = ContextManager(storage=storage, config=config)

    async def scenario():
        for text in ["one message", "two message", "three message"]:
            await engine.add_user_message(text)
        await engine.add_to_long_term_memory("first fact")
        await engine.add_to_long_term_memory("second fact")

    asyncio.run(scenario())

    assert [item.content for item in engine.short_term_memory] == ["two message", "three message"]
    assert [item.content for item in engine.long_term_memory] == ["second fact"]
    assert all(key.startswith("bob:") for key in storage.data)


def test_engines_are_independent():
    first = ContextManager(storage=InMemoryKeyValueStore())
    second = ContextManager(storage=InMemoryKeyValueStore())

    asyncio.run(first.add_user_message("I love cats"))

    assert second.get_memory_stats().short_term_count == 0
    assert first.engine_id != second.engine_id
