# tests/test_labels.py — Board labels and card attachments
import pytest

from errors import (
    BusinessRuleViolation, ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from models import ActivityAction, EntityType
from repositories import ActivityRepository, LabelRepository
from usecases.boards import CreateBoard, CreateBoardRequest
from usecases.labels import (
    AddLabelToCard, CardLabelRequest, CreateLabel, CreateLabelRequest, DeleteLabel,
    LabelRequest, RemoveLabelFromCard, UpdateLabel, UpdateLabelRequest,
)
from usecases.queries import CardQuery, GetCard, GetCardLabels


@pytest.fixture
def new_label(db_session, board, owner):
    async def _create(name="Bug", color="#FF0000", board_id=None):
        return await CreateLabel(db_session).execute(CreateLabelRequest(
            user_id=owner.id, board_id=board_id or board.id, name=name, color=color,
        ))
    return _create


@pytest.mark.asyncio
class TestLabelCrud:
    async def test_create_normalizes_fields(self, new_label):
        label = await new_label(name="  Urgent ", color="#00ff00")
        assert label.name == "Urgent"
        assert label.color == "#00FF00"

    async def test_name_too_long(self, new_label):
        with pytest.raises(ValidationError):
            await new_label(name="x" * 51)

    async def test_bad_color(self, new_label):
        with pytest.raises(ValidationError):
            await new_label(color="green")

    async def test_member_cannot_create(self, db_session, board, member_user):
        with pytest.raises(ForbiddenError):
            await CreateLabel(db_session).execute(CreateLabelRequest(
                user_id=member_user.id, board_id=board.id, name="Mine", color="#123456",
            ))

    async def test_rename(self, db_session, new_label, admin_user):
        label = await new_label()
        updated = await UpdateLabel(db_session).execute(UpdateLabelRequest(
            user_id=admin_user.id, label_id=label.id, name="Defect",
        ))
        assert updated.name == "Defect"
        assert updated.color == "#FF0000"

        latest = (await ActivityRepository(db_session).find_by_board(label.board_id))[0]
        assert latest.action == ActivityAction.UPDATE
        assert latest.entity_type == EntityType.LABEL
        assert latest.data == {"name": {"from": "Bug", "to": "Defect"}}

    async def test_delete_detaches_from_cards(self, db_session, new_label, cards, owner):
        label = await new_label()
        label_id, card_id = label.id, cards[0].id
        await AddLabelToCard(db_session).execute(CardLabelRequest(
            user_id=owner.id, card_id=card_id, label_id=label_id,
        ))
        await DeleteLabel(db_session).execute(LabelRequest(user_id=owner.id, label_id=label_id))

        labels = LabelRepository(db_session)
        assert await labels.find_by_id(label_id) is None
        assert not await labels.is_attached_to_card(card_id, label_id)

    async def test_unknown_label(self, db_session, owner):
        with pytest.raises(NotFoundError):
            await UpdateLabel(db_session).execute(UpdateLabelRequest(
                user_id=owner.id, label_id="missing", name="Nothing",
            ))


@pytest.mark.asyncio
class TestCardLabels:
    async def test_attach_and_read_back(self, db_session, new_label, cards, owner, viewer_user):
        label = await new_label()
        card_id = cards[0].id
        attached = await AddLabelToCard(db_session).execute(CardLabelRequest(
            user_id=owner.id, card_id=card_id, label_id=label.id,
        ))
        assert attached.id == label.id

        view = await GetCard(db_session).execute(CardQuery(user_id=viewer_user.id, card_id=card_id))
        assert [l.name for l in view.labels] == ["Bug"]

        latest = (await ActivityRepository(db_session).find_by_card(card_id))[0]
        assert latest.action == ActivityAction.ADD_LABEL
        assert latest.entity_type == EntityType.CARD
        assert latest.card_id == card_id
        assert latest.data == {"labelId": label.id, "labelName": "Bug", "labelColor": "#FF0000"}

    async def test_duplicate_attachment(self, db_session, new_label, cards, owner):
        label = await new_label()
        request = CardLabelRequest(user_id=owner.id, card_id=cards[0].id, label_id=label.id)
        await AddLabelToCard(db_session).execute(request)
        with pytest.raises(ConflictError):
            await AddLabelToCard(db_session).execute(request)

    async def test_label_from_another_board(self, db_session, new_label, cards, owner):
        other = await CreateBoard(db_session).execute(CreateBoardRequest(user_id=owner.id, title="Other"))
        foreign = await new_label(name="Foreign", board_id=other.id)
        with pytest.raises(BusinessRuleViolation):
            await AddLabelToCard(db_session).execute(CardLabelRequest(
                user_id=owner.id, card_id=cards[0].id, label_id=foreign.id,
            ))

    async def test_member_cannot_attach(self, db_session, new_label, cards, member_user):
        label = await new_label()
        with pytest.raises(ForbiddenError):
            await AddLabelToCard(db_session).execute(CardLabelRequest(
                user_id=member_user.id, card_id=cards[0].id, label_id=label.id,
            ))

    async def test_detach(self, db_session, new_label, cards, owner):
        label = await new_label()
        card_id, label_id = cards[0].id, label.id
        request = CardLabelRequest(user_id=owner.id, card_id=card_id, label_id=label_id)
        await AddLabelToCard(db_session).execute(request)
        await RemoveLabelFromCard(db_session).execute(request)

        assert await GetCardLabels(db_session).execute(CardQuery(user_id=owner.id, card_id=card_id)) == []
        latest = (await ActivityRepository(db_session).find_by_card(card_id))[0]
        assert latest.action == ActivityAction.REMOVE_LABEL

    async def test_detach_when_not_attached(self, db_session, new_label, cards, owner):
        label = await new_label()
        with pytest.raises(NotFoundError):
            await RemoveLabelFromCard(db_session).execute(CardLabelRequest(
                user_id=owner.id, card_id=cards[0].id, label_id=label.id,
            ))
