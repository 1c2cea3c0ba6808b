import pytest

from holdem.engine import PokerEngine
from holdem.evaluator import HandCategory
from holdem.models import ActionType, Phase, TableConfig

from .helpers import act, create_engine, play_passively, stack_deck, table_chips


def test_construction_requires_two_to_six_players():
    seed = {"id": "solo", "username": "Solo", "chips": 100}
    with pytest.raises(ValueError, match="2-6 players"):
        PokerEngine([seed], TableConfig())
    crowd = [{"id": str(i), "username": f"P{i}", "chips": 100} for i in range(7)]
    with pytest.raises(ValueError, match="2-6 players"):
        PokerEngine(crowd, TableConfig())


def test_table_config_rejects_bad_blinds():
    with pytest.raises(ValueError, match="Blinds must be positive"):
        TableConfig(small_blind=0, big_blind=20)
    with pytest.raises(ValueError, match="cannot exceed"):
        TableConfig(small_blind=30, big_blind=20)


def test_table_config_keeps_seat_bounds_fixed():
    with pytest.raises(ValueError, match="2-6 players"):
        TableConfig(max_players=7)
    with pytest.raises(ValueError, match="2-6 players"):
        TableConfig(min_players=1)
    with pytest.raises(ValueError, match="2-6 players"):
        TableConfig(min_players=5, max_players=4)
    crowd = [{"id": str(i), "username": f"P{i}", "chips": 100} for i in range(7)]
    with pytest.raises(ValueError):
        PokerEngine(crowd, TableConfig(max_players=7))


def test_new_engine_waits_for_first_hand():
    engine = create_engine()
    assert engine.phase == Phase.WAITING
    assert engine.get_current_player() is None
    assert engine.get_available_actions() == []
    assert not engine.do_action("a", ActionType.CHECK).success


def test_start_hand_posts_blinds_and_deals():
    engine = create_engine(players=3)
    engine.start_hand()

    a, b, c = engine.players
    assert engine.phase == Phase.PREFLOP
    assert engine.dealer_index == 1
    assert c.current_bet == 10 and c.chips == 990
    assert a.current_bet == 20 and a.chips == 980
    assert engine.current_bet == 20
    assert engine.min_raise == 20
    assert engine.get_current_player() is b
    assert all(len(player.hole_cards) == 2 for player in engine.players)
    assert len(engine.deck) == 52 - 6
    assert engine.get_full_state()["pot_total"] == 30
    assert engine.consume_events()[0] == {
        "ev": "POST_BLINDS",
        "sb_player": "c",
        "bb_player": "a",
        "sb": 10,
        "bb": 20,
    }


def test_heads_up_small_blind_acts_first():
    engine = create_engine(players=2)
    engine.start_hand()
    a, b = engine.players
    assert engine.dealer_index == 1
    assert a.current_bet == 10
    assert b.current_bet == 20
    assert engine.get_current_player() is a


def test_start_hand_drops_busted_players_and_moves_button():
    engine = create_engine(players=3)
    engine.players[1].chips = 0
    engine.start_hand()
    assert [player.id for player in engine.players] == ["a", "c"]
    assert engine.dealer_index == 1

    play_passively(engine)
    engine.start_hand()
    assert engine.dealer_index == 0


def test_start_hand_without_two_funded_players_ends_table():
    engine = create_engine(chips=[500, 0])
    assert not engine.can_continue()
    engine.start_hand()
    assert engine.phase == Phase.ENDED
    assert engine.get_current_player() is None


def test_fold_to_one_player_awards_pot_without_showdown(monkeypatch):
    def no_showdown(*args, **kwargs):
        raise AssertionError("evaluator must not run")

    monkeypatch.setattr("holdem.engine.find_best", no_showdown)
    engine = create_engine(players=3)
    engine.start_hand()

    act(engine, ActionType.FOLD)  # b
    act(engine, ActionType.FOLD)  # c, small blind

    assert engine.phase == Phase.ENDED
    assert engine.winners == ["a"]
    assert engine.payouts == {"a": 30}
    assert [player.chips for player in engine.players] == [1_010, 1_000, 990]
    assert engine.pot == 0
    assert engine.hand_deltas() == {"a": 10, "b": 0, "c": -10}
    assert all(player.hand_result is None for player in engine.players)


def test_streets_progress_and_reset_betting():
    engine = create_engine(players=3)
    engine.start_hand()

    act(engine, ActionType.CALL)  # b
    act(engine, ActionType.CALL)  # c
    act(engine, ActionType.CHECK)  # a, big blind option

    assert engine.phase == Phase.FLOP
    assert len(engine.community_cards) == 3
    assert engine.pot == 60
    assert engine.current_bet == 0
    assert engine.min_raise == 20
    assert all(player.current_bet == 0 and not player.has_acted for player in engine.players)
    # First seat after the dealer opens post-flop betting.
    assert engine.get_current_player() is engine.players[2]

    for expected_phase, board_size in ((Phase.TURN, 4), (Phase.RIVER, 5)):
        for _ in range(3):
            act(engine, ActionType.CHECK)
        assert engine.phase == expected_phase
        assert len(engine.community_cards) == board_size

    for _ in range(3):
        act(engine, ActionType.CHECK)
    assert engine.phase == Phase.ENDED
    assert engine.winners
    assert all(player.hand_result is not None for player in engine.players)
    assert table_chips(engine) == 3_000


def test_showdown_pays_best_hand(monkeypatch):
    stack_deck(
        monkeypatch,
        ["Ah", "Ad", "2c", "7d", "3s", "8h", "Kc", "9d", "4s", "Jh", "5c"],
    )
    engine = create_engine(players=3)
    engine.start_hand()
    play_passively(engine)

    assert engine.phase == Phase.ENDED
    assert engine.winners == ["a"]
    assert engine.players[0].hand_result.category == HandCategory.ONE_PAIR
    assert [player.chips for player in engine.players] == [1_040, 980, 980]


def test_board_straight_splits_pot(monkeypatch):
    stack_deck(monkeypatch, ["2c", "3d", "2h", "3s", "Ts", "Jh", "Qd", "Kc", "Ah"])
    engine = create_engine(players=2)
    engine.start_hand()
    play_passively(engine)

    assert sorted(engine.winners) == ["a", "b"]
    assert engine.payouts == {"a": 20, "b": 20}
    assert [player.chips for player in engine.players] == [1_000, 1_000]


def test_odd_chip_goes_to_first_winner_in_seat_order(monkeypatch):
    stack_deck(
        monkeypatch,
        ["2c", "3d", "2h", "3h", "4c", "5d", "2d", "3c", "Ts", "Js", "Qs", "Ks", "As"],
    )
    engine = create_engine(players=4)
    engine.start_hand()

    act(engine, ActionType.CALL)  # a
    act(engine, ActionType.CALL)  # b, dealer
    act(engine, ActionType.FOLD)  # c, small blind
    act(engine, ActionType.CHECK)  # d, big blind
    play_passively(engine)

    assert engine.winners == ["a", "b", "d"]
    assert engine.payouts == {"a": 24, "b": 23, "d": 23}
    assert [player.chips for player in engine.players] == [1_004, 1_003, 990, 1_003]


def test_all_in_and_call_runs_out_board(monkeypatch):
    engine = create_engine(chips=[1_000, 2_000])
    engine.start_hand()

    act(engine, ActionType.ALL_IN)  # a
    act(engine, ActionType.CALL)  # b still has chips behind

    assert engine.phase == Phase.ENDED
    assert len(engine.community_cards) == 5
    assert engine.players[1].chips >= 1_000
    assert any(event["ev"] == "RUNOUT" for event in engine.consume_events())
    assert table_chips(engine) == 3_000


def test_blind_all_in_hands_action_to_other_player():
    engine = create_engine(chips=[5, 1_000])
    engine.start_hand()

    a, b = engine.players
    assert a.all_in and a.current_bet == 5
    assert engine.get_current_player() is b
    act(engine, ActionType.CHECK)

    assert engine.phase == Phase.ENDED
    assert len(engine.community_cards) == 5
    assert table_chips(engine) == 1_005


def test_blinds_putting_everyone_all_in_finish_immediately():
    engine = create_engine(chips=[5, 10])
    engine.start_hand()

    assert engine.phase == Phase.ENDED
    assert len(engine.community_cards) == 5
    assert engine.winners
    assert table_chips(engine) == 15


def test_hole_cards_and_board_never_repeat():
    engine = create_engine(players=6)
    engine.start_hand()
    play_passively(engine)
    dealt = [card for player in engine.players for card in player.hole_cards] + engine.community_cards
    assert len(dealt) == 17
    assert len(set(dealt)) == 17


def test_consecutive_hands_use_fresh_shuffles():
    engine = create_engine(players=2)
    engine.start_hand()
    first = [card for player in engine.players for card in player.hole_cards] + list(engine.deck)
    act(engine, ActionType.FOLD)

    engine.start_hand()
    second = [card for player in engine.players for card in player.hole_cards] + list(engine.deck)
    assert len(set(second)) == 52
    assert first != second


def test_remove_player_only_between_hands():
    engine = create_engine(players=3)
    engine.start_hand()
    assert engine.dealer_index == 1
    assert not engine.remove_player("a")

    play_passively(engine)
    assert engine.phase == Phase.ENDED
    assert not engine.remove_player("zed")
    assert engine.remove_player("a")
    assert [player.id for player in engine.players] == ["b", "c"]
    # Button stays with "b", so the next deal moves it to "c".
    assert engine.players[engine.dealer_index].id == "b"

    engine.start_hand()
    assert engine.players[engine.dealer_index].id == "c"
