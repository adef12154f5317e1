import logging

from scopebind import Component, Container, GuardState, HostObject, Injected, Lifetime, guard_for, injection_points


class Clock: ...


class Mailer:
    def __init__(self, clock: Clock):
        self.clock = clock


class Consumer:
    clock: Injected[Clock] = None
    mailer: Injected[Mailer] = None
    plain: int = 0


class NamedConsumer(Consumer):
    __inject__ = {"dsn": "dsn", "clock": "fake-clock"}

    dsn = None


def test_injection_points_collects_marked_annotations_only():
    names = {p.name: p.token for p in injection_points(Consumer)}
    assert names == {"clock": Clock, "mailer": Mailer}


def test_injection_points_explicit_mapping_extends_and_overrides_annotations():
    names = {p.name: p.token for p in injection_points(NamedConsumer)}
    assert names == {"clock": "fake-clock", "mailer": Mailer, "dsn": "dsn"}


def test_injection_points_are_cached_per_class():
    assert injection_points(Consumer) is injection_points(Consumer)


def test_inject_into_assigns_resolved_members_and_marks_guard():
    c = Container()
    c.register(Clock, lifetime=Lifetime.SINGLETON)
    obj = Consumer()

    c.inject_into(obj)

    assert obj.clock is c.resolve(Clock)
    assert isinstance(obj.mailer, Mailer)
    assert obj.mailer.clock is obj.clock
    assert obj.plain == 0
    assert guard_for(obj).state is GuardState.SUCCEEDED


def test_inject_into_absorbs_member_failures(caplog):
    c = Container()
    c.register_instance("dsn", "sqlite://")
    obj = NamedConsumer()

    with caplog.at_level(logging.WARNING, logger="scopebind._container"):
        c.inject_into(obj)

    assert obj.dsn == "sqlite://"
    assert obj.clock is None  # "fake-clock" is not registered
    assert isinstance(obj.mailer, Mailer)
    assert "Could not inject 'clock'" in caplog.text


def test_inject_into_host_object_injects_whole_subtree():
    class Holder(Component):
        clock: Injected[Clock] = None

    c = Container()
    c.register(Clock)
    root = HostObject("root", active=False)
    child = HostObject("child", root)
    top, nested = root.add_component(Holder()), child.add_component(Holder())

    c.inject_into(root)

    assert top.clock is nested.clock is c.resolve(Clock)
    assert guard_for(root).state is GuardState.SUCCEEDED
    assert guard_for(child).state is GuardState.SUCCEEDED


def test_unresolvable_forward_reference_is_skipped_with_warning(caplog):
    class Broken:
        missing: Injected["DoesNotExist"] = None  # noqa: F821

    with caplog.at_level(logging.WARNING, logger="scopebind._injection"):
        assert injection_points(Broken) == ()
    assert "DoesNotExist" in caplog.text
