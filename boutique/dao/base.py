from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select


class BaseDAO:
    model = None

    @classmethod
    async def find_one_or_none_by_id(cls, data_id: int, db: AsyncSession):
        result = await db.execute(select(cls.model).where(cls.model.id == data_id))
        return result.scalar_one_or_none()

    @classmethod
    async def delete(cls, instance, db: AsyncSession):
        await db.delete(instance)
        await db.flush()
