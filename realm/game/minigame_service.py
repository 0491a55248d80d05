"""
The daily minigame and minigame leaderboards.

Players get one daily play. Consecutive days build a streak (capped at 5)
that shifts the reward odds toward rarer prizes. Scored minigames such as
archery feed leaderboards whose top ten earn prizes collected at the
location where the winning score was set.
"""

import calendar
import random
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.item import Item
from ..models.tavern import MinigamePlay, MinigameReward, MinigameScore
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from .inventory_service import InventoryService

logger = get_logger(__name__)

LEADERBOARD_SIZE = 10

# rank -> prize
RANK_REWARDS = {
    1: {"item_rarity": "legendary", "gold": 1000},
    2: {"item_rarity": "epic", "gold": 500},
    3: {"item_rarity": "rare", "gold": 250},
    **{rank: {"item_rarity": None, "gold": 100} for rank in range(4, LEADERBOARD_SIZE + 1)},
}


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start, time.min, tzinfo=UTC),
        datetime.combine(end, time.max, tzinfo=UTC),
    )


def period_bounds(period: str, today: date) -> tuple[date, date]:
    """Current daily/weekly/monthly leaderboard window containing ``today``."""
    if period == "weekly":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if period == "monthly":
        return today.replace(day=1), today.replace(day=calendar.monthrange(today.year, today.month)[1])
    return today, today


class MinigameService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()
        self._inventory = InventoryService(session)

    @staticmethod
    def _today() -> date:
        return utcnow().date()

    async def _play_on(self, user: User, day: date) -> MinigamePlay | None:
        stmt = select(MinigamePlay).where(MinigamePlay.user_id == user.id, MinigamePlay.played_at == day)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def can_play(self, user: User, today: date | None = None) -> bool:
        return await self._play_on(user, today or self._today()) is None

    async def get_current_streak(self, user: User, today: date | None = None) -> int:
        """Today's streak if already played, else yesterday's (still extendable), else 0."""
        today = today or self._today()
        played_today = await self._play_on(user, today)
        if played_today is not None:
            return played_today.streak_count
        yesterday = await self._play_on(user, today - timedelta(days=1))
        if yesterday is None:
            return 0
        return min(yesterday.streak_count, MinigamePlay.MAX_STREAK - 1)

    async def get_next_streak(self, user: User, today: date | None = None) -> int:
        return min(await self.get_current_streak(user, today) + 1, MinigamePlay.MAX_STREAK)

    def roll_reward_type(self, streak_day: int) -> str:
        roll = self._rng.randint(1, 100)
        cumulative = 0
        for reward_type, chance in MinigamePlay.reward_chances(streak_day).items():
            cumulative += chance
            if roll <= cumulative:
                return reward_type
        return MinigamePlay.REWARD_COMMON

    async def _random_item_of_rarity(self, rarity: str) -> Item | None:
        stmt = select(Item).where(Item.rarity == rarity).order_by(Item.id)
        items = list((await self._session.execute(stmt)).scalars())
        return self._rng.choice(items) if items else None

    async def get_player_info(self, user: User) -> dict[str, Any]:
        stmt = select(MinigamePlay).where(MinigamePlay.user_id == user.id).order_by(MinigamePlay.played_at.desc())
        last = (await self._session.execute(stmt)).scalars().first()
        next_streak = await self.get_next_streak(user)
        return {
            "can_play": await self.can_play(user),
            "streak": await self.get_current_streak(user),
            "last_play": last.played_at.isoformat() if last else None,
            "next_streak": next_streak,
            "reward_chances": MinigamePlay.reward_chances(next_streak),
        }

    async def get_rewards_history(self, user: User, limit: int = 10) -> list[dict[str, Any]]:
        stmt = (
            select(MinigamePlay)
            .where(MinigamePlay.user_id == user.id)
            .order_by(MinigamePlay.played_at.desc())
            .limit(limit)
        )
        return [
            {
                "played_at": play.played_at.isoformat(),
                "reward_type": play.reward_type,
                "reward_value": play.reward_value,
                "reward_item": play.reward_item.name if play.reward_item else None,
                "streak": play.streak_count,
            }
            for play in (await self._session.execute(stmt)).scalars()
        ]

    async def play(self, user: User, today: date | None = None) -> dict[str, Any]:
        today = today or self._today()
        if not await self.can_play(user, today):
            return {
                "success": False,
                "message": "You have already played today. Come back tomorrow!",
                "streak": await self.get_current_streak(user, today),
            }

        streak = await self.get_next_streak(user, today)
        reward_type = self.roll_reward_type(streak)
        gold = 0
        item = None
        if reward_type == MinigamePlay.REWARD_COMMON:
            gold = self._rng.randint(50, 150)
        elif reward_type == MinigamePlay.REWARD_UNCOMMON:
            gold = self._rng.randint(150, 300)
        elif reward_type == MinigamePlay.REWARD_RARE:
            # Even odds of gold or a rare item
            if self._rng.randint(0, 1) == 0:
                gold = self._rng.randint(300, 500)
            else:
                item = await self._random_item_of_rarity("rare")
        elif reward_type == MinigamePlay.REWARD_EPIC:
            gold = self._rng.randint(500, 1000)
            item = await self._random_item_of_rarity("epic")

        user.gold += gold
        if item is not None:
            await self._inventory.add_item(user, item, 1)
        self._session.add(
            MinigamePlay(
                user_id=user.id,
                played_at=today,
                streak_count=streak,
                reward_type=reward_type,
                reward_value=gold,
                reward_item_id=item.id if item else None,
                reward_item=item,
            )
        )
        await self._session.flush()
        logger.info("Daily minigame played", user_id=user.id, streak=streak, reward_type=reward_type, gold=gold)
        return {
            "success": True,
            "message": f"You won a {reward_type} reward!",
            "reward_type": reward_type,
            "reward_value": gold,
            "reward_item": {"id": item.id, "name": item.name, "rarity": item.rarity} if item else None,
            "streak": streak,
        }

    async def has_scored_today(self, user: User, minigame: str) -> bool:
        start, end = _day_bounds(self._today(), self._today())
        stmt = select(MinigameScore.id).where(
            MinigameScore.user_id == user.id,
            MinigameScore.minigame == minigame,
            MinigameScore.played_at.between(start, end),
        )
        return (await self._session.execute(stmt)).first() is not None

    async def submit_score(self, user: User, minigame: str, score: int) -> dict[str, Any]:
        if not user.current_location_type or not user.current_location_id:
            return {"success": False, "message": "You must be at a location to play."}
        if score < 0:
            return {"success": False, "message": "Invalid score."}
        if minigame in MinigameScore.DAILY_LIMITED_GAMES and await self.has_scored_today(user, minigame):
            return {"success": False, "message": "You have already played this minigame today. Come back tomorrow!"}

        self._session.add(
            MinigameScore(
                user_id=user.id,
                minigame=minigame,
                score=score,
                location_type=user.current_location_type,
                location_id=user.current_location_id,
                played_at=utcnow(),
            )
        )
        await self._session.flush()
        return {"success": True, "message": f"Score of {score} recorded!"}

    async def get_top_players(self, minigame: str, start: date, end: date) -> list[dict[str, Any]]:
        """Best score per player in the window, with where it was set; highest first."""
        start_at, end_at = _day_bounds(start, end)
        stmt = (
            select(MinigameScore)
            .where(MinigameScore.minigame == minigame, MinigameScore.played_at.between(start_at, end_at))
            .order_by(MinigameScore.score.desc(), MinigameScore.id)
        )
        best: dict[int, MinigameScore] = {}
        for score in (await self._session.execute(stmt)).scalars():
            best.setdefault(score.user_id, score)
        return [
            {
                "user_id": score.user_id,
                "best_score": score.score,
                "location_type": score.location_type,
                "location_id": score.location_id,
            }
            for score in list(best.values())[:LEADERBOARD_SIZE]
        ]

    async def get_leaderboard(self, minigame: str, period: str = "daily") -> list[dict[str, Any]]:
        start, end = period_bounds(period, self._today())
        board = await self.get_top_players(minigame, start, end)
        for rank, entry in enumerate(board, start=1):
            entry["rank"] = rank
        return board

    async def distribute_rewards(self, minigame: str, today: date | None = None) -> dict[str, int]:
        """
        Award prizes for every leaderboard period that closed before ``today``:
        yesterday always, last week on Mondays, last month on the 1st.
        """
        today = today or self._today()
        yesterday = today - timedelta(days=1)
        counts = {MinigameReward.TYPE_DAILY: await self._distribute(minigame, MinigameReward.TYPE_DAILY, yesterday, yesterday)}
        if today.weekday() == 0:
            start = today - timedelta(days=7)
            counts[MinigameReward.TYPE_WEEKLY] = await self._distribute(
                minigame, MinigameReward.TYPE_WEEKLY, start, start + timedelta(days=6)
            )
        if today.day == 1:
            start = yesterday.replace(day=1)
            counts[MinigameReward.TYPE_MONTHLY] = await self._distribute(
                minigame, MinigameReward.TYPE_MONTHLY, start, yesterday
            )
        logger.info("Minigame rewards distributed", minigame=minigame, **counts)
        return counts

    async def _distribute(self, minigame: str, reward_type: str, start: date, end: date) -> int:
        created = 0
        for rank, entry in enumerate(await self.get_top_players(minigame, start, end), start=1):
            stmt = select(MinigameReward.id).where(
                MinigameReward.user_id == entry["user_id"],
                MinigameReward.minigame == minigame,
                MinigameReward.reward_type == reward_type,
                MinigameReward.period_start == start,
                MinigameReward.period_end == end,
            )
            if (await self._session.execute(stmt)).first() is not None:
                logger.info("Reward already exists for user", user_id=entry["user_id"], reward_type=reward_type)
                continue

            prize = RANK_REWARDS[rank]
            item = await self._random_item_of_rarity(prize["item_rarity"]) if prize["item_rarity"] else None
            self._session.add(
                MinigameReward(
                    user_id=entry["user_id"],
                    minigame=minigame,
                    reward_type=reward_type,
                    rank=rank,
                    location_type=entry["location_type"],
                    location_id=entry["location_id"],
                    gold_amount=prize["gold"],
                    item_rarity=prize["item_rarity"],
                    item_id=item.id if item else None,
                    item=item,
                    period_start=start,
                    period_end=end,
                )
            )
            created += 1
        await self._session.flush()
        return created

    async def get_pending_rewards(self, user: User) -> list[MinigameReward]:
        stmt = (
            select(MinigameReward)
            .where(MinigameReward.user_id == user.id, MinigameReward.collected_at.is_(None))
            .order_by(MinigameReward.period_end.desc(), MinigameReward.id)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def get_pending_count(self, user: User) -> int:
        stmt = select(func.count(MinigameReward.id)).where(
            MinigameReward.user_id == user.id, MinigameReward.collected_at.is_(None)
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def collect_rewards(self, user: User) -> dict[str, Any]:
        if not user.current_location_type or not user.current_location_id:
            return {"success": False, "message": "You must be at a location to collect rewards."}
        rewards = [
            reward
            for reward in await self.get_pending_rewards(user)
            if reward.location_type == user.current_location_type and reward.location_id == user.current_location_id
        ]
        if not rewards:
            return {"success": False, "message": "You have no rewards to collect at this location."}

        total_gold = 0
        items = []
        for reward in rewards:
            total_gold += reward.gold_amount
            if reward.item is not None:
                await self._inventory.add_item(user, reward.item, 1)
                items.append(reward.item.name)
            reward.collect()
        user.gold += total_gold
        await self._session.flush()

        parts = []
        if total_gold:
            parts.append(f"{total_gold} gold")
        parts += items
        return {"success": True, "message": f"Collected: {', '.join(parts)}.", "gold": total_gold, "items": items}
