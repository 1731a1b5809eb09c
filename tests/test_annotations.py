"""Tests for handler annotations and the declaration registry."""

import pytest

from slashwire.annotations import (
    DeclarationRegistry,
    PartialDescriptor,
    declarations,
    event,
    groupslash,
    slash,
    subslash,
)
from slashwire.commands.models import SlashDescriptor
from slashwire.exceptions import ConfigurationError


def test_event_defaults_to_member_name():
    class Bot:
        @event()
        def ready(self):
            pass

        @event("debug")
        def on_debug(self, message):
            pass

    snap = declarations.drain(Bot)
    assert list(snap.events) == ["ready", "debug"]
    assert snap.events["ready"] is Bot.ready
    assert snap.events["debug"] is Bot.on_debug


def test_annotated_method_is_left_unchanged():
    """The class attribute must be the plain function, callable as usual."""
    class Bot:
        @slash()
        def ping(self, interaction):
            return "pong"

    assert not isinstance(Bot.__dict__["ping"], PartialDescriptor)
    assert Bot().ping(None) == "pong"


def test_same_event_name_last_writer_wins():
    class Bot:
        @event("ready")
        def first(self):
            pass

        @event("ready")
        def second(self):
            pass

    snap = declarations.drain(Bot)
    assert len(snap.events) == 1
    assert snap.events["ready"] is Bot.second


def test_event_on_non_callable_raises():
    with pytest.raises(ConfigurationError, match="requires a function"):
        event()(42)


def test_slash_factories_record_descriptors_in_source_order():
    class Bot:
        @subslash("cmd", "direct")
        def direct(self, interaction):
            pass

        @groupslash("cmd", "grp", guild="123")
        def grouped(self, interaction):
            pass

        @slash(description="Root command")
        def cmd(self, interaction):
            pass

    snap = declarations.drain(Bot)
    assert [d.name for d in snap.commands] == ["direct", "grouped", "cmd"]

    direct, grouped, root = snap.commands
    assert (direct.parent, direct.group, direct.guild) == ("cmd", None, None)
    assert (grouped.parent, grouped.group, grouped.guild) == ("cmd", "grp", "123")
    assert root.parent is None
    assert root.description == "Root command"
    assert root.handler is Bot.cmd


def test_stacked_subslash_enriches_inner_descriptor():
    """An outer annotation sets parent on the inner descriptor instead of adding one."""
    class Bot:
        @subslash("cmd")
        @slash("leaf", description="Leaf")
        def handler(self, interaction):
            pass

    snap = declarations.drain(Bot)
    assert len(snap.commands) == 1
    desc = snap.commands[0]
    assert desc.name == "leaf"
    assert desc.parent == "cmd"
    assert desc.group is None
    assert desc.description == "Leaf"


def test_stacked_groupslash_sets_parent_and_group():
    class Bot:
        @groupslash("cmd", "grp")
        @slash("leaf")
        def handler(self, interaction):
            pass

    (desc,) = declarations.drain(Bot).commands
    assert desc.path == ("cmd", "grp", "leaf")


def test_event_and_slash_on_same_method():
    class Bot:
        @event("ready")
        @slash()
        def status(self, *args):
            pass

    snap = declarations.drain(Bot)
    assert snap.events["ready"] is Bot.status
    assert snap.commands[0].name == "status"


def test_drain_empties_buffer_and_snapshot_is_reused():
    class Bot:
        @event()
        def ready(self):
            pass

    assert declarations.pending(Bot)
    first = declarations.drain(Bot)
    assert not declarations.pending(Bot)

    second = declarations.drain(Bot)
    assert dict(second.events) == dict(first.events)


def test_snapshot_is_immutable():
    class Bot:
        @event()
        def ready(self):
            pass

    snap = declarations.drain(Bot)
    with pytest.raises(TypeError):
        snap.events["other"] = lambda: None


def test_subclass_inherits_and_overrides_declarations():
    class Base:
        @event()
        def ready(self):
            pass

        @slash()
        def base_cmd(self, interaction):
            pass

    class Child(Base):
        @event("ready")
        def child_ready(self):
            pass

        @slash()
        def child_cmd(self, interaction):
            pass

    snap = declarations.drain(Child)
    assert snap.events["ready"] is Child.child_ready
    assert [d.name for d in snap.commands] == ["base_cmd", "child_cmd"]

    # Draining the child also froze the base declarations
    base_snap = declarations.drain(Base)
    assert base_snap.events["ready"] is Base.ready


def test_registry_builder_api_without_decorators():
    registry = DeclarationRegistry()

    class Bot:
        pass

    def run(interaction):
        pass

    registry.record_command(Bot, SlashDescriptor(name="run", handler=run))
    registry.record_event(Bot, "ready", run)

    snap = registry.drain(Bot)
    assert snap.commands[0].handler is run
    assert snap.events["ready"] is run
    # The global registry knows nothing about it
    assert declarations.drain(Bot).empty


def test_repopulated_buffer_extends_snapshot():
    registry = DeclarationRegistry()

    class Bot:
        pass

    def first(interaction):
        pass

    def second(interaction):
        pass

    registry.record_command(Bot, SlashDescriptor(name="first", handler=first))
    registry.drain(Bot)
    registry.record_command(Bot, SlashDescriptor(name="second", handler=second))

    snap = registry.drain(Bot)
    assert [d.name for d in snap.commands] == ["first", "second"]
