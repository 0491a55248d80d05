"""
Tavern dice games.

- high_roll: player and house each roll 2d6, strictly higher wins (ties go to the house)
- hazard: 7 or 11 on the come-out wins, 2/3/12 loses, anything else sets a
  point that must be rolled again before a 7
- doubles: one 2d6 roll, doubles win

Winnings are ``floor(wager * multiplier)`` less a 10% house rake. Every game
restores a little energy, more for a win.
"""

import random
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.tavern import TavernDiceGame
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

COOLDOWN_SECONDS = 5 * 60
MIN_WAGER = 10
MAX_WAGER = 2500
ENERGY_WIN = 10
ENERGY_LOSE = 3
HOUSE_RAKE = 0.10
MULTIPLIERS = {
    TavernDiceGame.GAME_HIGH_ROLL: 1.5,
    TavernDiceGame.GAME_HAZARD: 1.75,
    TavernDiceGame.GAME_DOUBLES: 2,
}
HAZARD_MAX_POINT_ROLLS = 10


def calculate_payout(wager: int, multiplier: float) -> int:
    base = int(wager * multiplier)
    return base - int(base * HOUSE_RAKE)


class DiceGameService:
    def __init__(
        self, session: AsyncSession, rng: random.Random | None = None, cooldown_seconds: int = COOLDOWN_SECONDS
    ):
        self._session = session
        self._rng = rng or random.Random()
        self._cooldown = timedelta(seconds=cooldown_seconds)

    def _roll(self) -> list[int]:
        return [self._rng.randint(1, 6), self._rng.randint(1, 6)]

    async def _last_game(self, user: User) -> TavernDiceGame | None:
        stmt = (
            select(TavernDiceGame)
            .where(TavernDiceGame.user_id == user.id)
            .order_by(TavernDiceGame.created_at.desc(), TavernDiceGame.id.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def can_play(self, user: User) -> dict[str, Any]:
        last = await self._last_game(user)
        if last is not None:
            cooldown_ends = last.created_at + self._cooldown
            if cooldown_ends > utcnow():
                return {
                    "can_play": False,
                    "reason": "You must wait before playing again.",
                    "cooldown_ends": cooldown_ends.isoformat(),
                }
        if user.gold < MIN_WAGER:
            return {"can_play": False, "reason": f"You need at least {MIN_WAGER}g to play.", "cooldown_ends": None}
        return {"can_play": True, "reason": None, "cooldown_ends": None}

    async def play(
        self, user: User, game_type: str, wager: int, location_type: str, location_id: int
    ) -> dict[str, Any]:
        if game_type not in TavernDiceGame.GAMES:
            return {"success": False, "message": "Invalid game type."}
        check = await self.can_play(user)
        if not check["can_play"]:
            return {"success": False, "message": check["reason"]}
        if wager < MIN_WAGER:
            return {"success": False, "message": f"Minimum wager is {MIN_WAGER}g."}
        if wager > MAX_WAGER:
            return {"success": False, "message": f"Maximum wager is {MAX_WAGER}g."}
        if user.gold < wager:
            return {"success": False, "message": "You don't have enough gold."}

        if game_type == TavernDiceGame.GAME_HIGH_ROLL:
            result = self.play_high_roll(wager)
        elif game_type == TavernDiceGame.GAME_HAZARD:
            result = self.play_hazard(wager)
        else:
            result = self.play_doubles(wager)

        payout = result["payout"] if result["won"] else -wager
        user.gold += payout
        energy_gain = max(0, min(result["energy"], user.max_energy - user.energy))
        user.energy += energy_gain

        game = TavernDiceGame(
            user_id=user.id,
            location_type=location_type,
            location_id=location_id,
            game_type=game_type,
            wager=wager,
            rolls=result["rolls"],
            won=result["won"],
            payout=payout,
            energy_awarded=result["energy"],
        )
        self._session.add(game)
        await self._session.flush()
        logger.info("Dice game played", user_id=user.id, game_type=game_type, wager=wager, won=result["won"], payout=payout)
        return {
            "success": True,
            "message": result["message"],
            "won": result["won"],
            "rolls": result["rolls"],
            "payout": payout,
            "energy": result["energy"],
            "game_id": game.id,
            "new_gold": user.gold,
            "new_energy": user.energy,
        }

    def _win(self, wager: int, game_type: str, rolls: Any, message: str) -> dict[str, Any]:
        payout = calculate_payout(wager, MULTIPLIERS[game_type])
        return {
            "won": True,
            "rolls": rolls,
            "payout": payout,
            "energy": ENERGY_WIN,
            "message": message.format(payout=payout),
        }

    @staticmethod
    def _loss(wager: int, rolls: Any, message: str) -> dict[str, Any]:
        return {"won": False, "rolls": rolls, "payout": wager, "energy": ENERGY_LOSE, "message": message}

    def play_high_roll(self, wager: int) -> dict[str, Any]:
        player, house = self._roll(), self._roll()
        player_total, house_total = sum(player), sum(house)
        rolls = {"player": player, "house": house}
        if player_total > house_total:
            return self._win(
                wager,
                TavernDiceGame.GAME_HIGH_ROLL,
                rolls,
                f"You rolled {player_total}, house rolled {house_total}. You win {{payout}}g!",
            )
        tie = " It's a tie - house wins." if player_total == house_total else ""
        return self._loss(wager, rolls, f"You rolled {player_total}, house rolled {house_total}.{tie} You lose.")

    def play_hazard(self, wager: int) -> dict[str, Any]:
        dice = self._roll()
        total = sum(dice)
        rolls = [{"dice": dice, "total": total, "type": "come_out"}]
        if total in (7, 11):
            return self._win(
                wager,
                TavernDiceGame.GAME_HAZARD,
                rolls,
                f"Rolled {total} on the come-out roll. Natural! You win {{payout}}g!",
            )
        if total in (2, 3, 12):
            return self._loss(wager, rolls, f"Rolled {total} on the come-out roll. Craps! You lose.")

        point = total
        for _ in range(HAZARD_MAX_POINT_ROLLS):
            dice = self._roll()
            total = sum(dice)
            rolls.append({"dice": dice, "total": total, "type": "point"})
            if total == point:
                return self._win(
                    wager,
                    TavernDiceGame.GAME_HAZARD,
                    rolls,
                    f"Point was {point}. Rolled {total}. You hit your point! You win {{payout}}g!",
                )
            if total == 7:
                return self._loss(wager, rolls, f"Point was {point}. Rolled 7. Seven out! You lose.")
        return self._loss(wager, rolls, "Game ended inconclusively. You lose.")

    def play_doubles(self, wager: int) -> dict[str, Any]:
        dice = self._roll()
        rolls = {"player": dice}
        if dice[0] == dice[1]:
            return self._win(wager, TavernDiceGame.GAME_DOUBLES, rolls, f"Double {dice[0]}s! You win {{payout}}g!")
        return self._loss(wager, rolls, f"Rolled {dice[0]} and {dice[1]}. No doubles. You lose.")

    async def get_game_history(self, user: User, limit: int = 10) -> list[dict[str, Any]]:
        stmt = (
            select(TavernDiceGame)
            .where(TavernDiceGame.user_id == user.id)
            .order_by(TavernDiceGame.created_at.desc(), TavernDiceGame.id.desc())
            .limit(limit)
        )
        return [
            {
                "id": game.id,
                "game_type": game.game_type,
                "wager": game.wager,
                "won": game.won,
                "payout": game.payout,
                "energy_awarded": game.energy_awarded,
                "played_at": game.created_at.isoformat(),
            }
            for game in (await self._session.execute(stmt)).scalars()
        ]

    async def get_tavern_stats(self, user: User, location_type: str, location_id: int) -> dict[str, int]:
        stmt = select(TavernDiceGame.won, TavernDiceGame.payout).where(
            TavernDiceGame.user_id == user.id,
            TavernDiceGame.location_type == location_type,
            TavernDiceGame.location_id == location_id,
        )
        rows = (await self._session.execute(stmt)).all()
        return {
            "wins": sum(1 for won, _ in rows if won),
            "losses": sum(1 for won, _ in rows if not won),
            "total_profit": sum(payout for _, payout in rows),
        }
