from classroom.models import Batch, User
from classroom.schemas import BatchRead, UserRead


def test_read_models_load_from_rows() -> None:
    batch = Batch(id=3, name="CS 2024", code="CS2024", year=2024)
    user = User(id=7, username="sara", email="sara@school.edu", full_name="Sara Ng", role="student", batch_id=3)

    assert BatchRead.model_validate(batch).code == "CS2024"
    out = UserRead.model_validate(user)
    assert out.username == "sara"
    assert out.batch_id == 3
    assert UserRead.model_config["from_attributes"] is True
