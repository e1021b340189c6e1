from camspin.core.roster import Participant, Roster


def p(pid: str, joined_at: float = 0.0, name: str | None = None, photo: str | None = None) -> Participant:
    return Participant(id=pid, name=name or pid.upper(), photo_ref=photo, joined_at=joined_at)


def test_arrival_order_kept():
    roster = Roster()
    assert roster.add(p("a"))
    assert roster.add(p("b"))
    assert roster.add(p("c"))

    assert [x.id for x in roster] == ["a", "b", "c"]
    assert roster.index_of("b") == 1
    assert roster.index_of("zzz") == -1


def test_late_join_does_not_reindex():
    roster = Roster([p("a", 1), p("b", 2)])
    roster.apply_snapshot([p("a", 1), p("b", 2), p("c", 0.5)])

    # c arrived late even though its timestamp sorts first
    assert [x.id for x in roster] == ["a", "b", "c"]


def test_snapshot_new_arrivals_sorted_by_join_time():
    roster = Roster()
    roster.apply_snapshot([p("z", 3), p("y", 1), p("x", 1)])
    assert [x.id for x in roster] == ["x", "y", "z"]


def test_departure_removes_and_shifts():
    roster = Roster([p("a", 1), p("b", 2), p("c", 3)])
    assert roster.apply_snapshot([p("b", 2), p("c", 3)])
    assert [x.id for x in roster] == ["b", "c"]
    assert "a" not in roster


def test_photo_update_keeps_position():
    roster = Roster([p("a", 1), p("b", 2)])
    assert roster.update_photo("a", "data:image/jpeg;base64,AAAA")
    assert roster[0].photo_ref == "data:image/jpeg;base64,AAAA"
    assert roster.index_of("a") == 0

    assert not roster.update_photo("nobody", "x")


def test_apply_snapshot_reports_changes():
    roster = Roster([p("a", 1)])
    assert not roster.apply_snapshot([p("a", 1)])
    assert roster.apply_snapshot([p("a", 1, photo="new")])
    assert roster.get("a").photo_ref == "new"


def test_re_add_updates_in_place():
    roster = Roster([p("a", 1, name="Ann")])
    assert not roster.add(p("a", 1, name="Anna"))
    assert len(roster) == 1
    assert roster.get("a").name == "Anna"


def test_snapshot_is_frozen():
    roster = Roster([p("a", 1), p("b", 2)])
    pool = roster.snapshot()

    roster.remove("a")
    roster.add(p("c", 3))

    assert len(pool) == 2
    assert pool.ids() == ("a", "b")
    assert pool.index_of("b") == 1
    assert pool.index_of("c") == -1
    assert pool[0].id == "a"


def test_get_none():
    assert Roster().get(None) is None
    assert not Roster().remove("a")
