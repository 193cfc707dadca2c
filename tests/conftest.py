import textwrap

import pytest

AMP_GENES = (
    "cytoband\t1q21.3\t8q24.21\t\n"
    "q value\t0.01\t0.5\t\n"
    "residual q value\t0.01\t0.5\t\n"
    "wide peak boundaries\tchr1:100-200\tchr8:300-400\t\n"
    "genes in wide peak\tGENE_A\tMYC\t\n"
    "\tGENE_B\t\t\n"
)

DEL_GENES = (
    "cytoband\t9p21.3\t\n"
    "q value\t0.001\t\n"
    "residual q value\t0.001\t\n"
    "wide peak boundaries\tchr9:500-600\t\n"
    "genes in wide peak\tCDKN2A\t\n"
    "\tCDKN2B\t\n"
)

_HEADER = "Unique Name\tDescriptor\tWide Peak Limits\tq values\tBS_A\tBS_B\t\n"
ALL_LESIONS = _HEADER + textwrap.dedent(
    """\
    Amplification Peak   1\t1q21.3 \tchr1:100-200(probes 1:2)\t0.01\t1\t0\t
    Amplification Peak   2\t8q24.21 \tchr8:300-400(probes 3:4)\t0.5\t0\t0\t
    Deletion Peak   1\t9p21.3 \tchr9:500-600(probes 5:6)\t0.001\t1\t0\t
    Amplification Peak   1 - CN values\t1q21.3 \tchr1:100-200(probes 1:2)\t0.01\t0.52\t0\t
    Amplification Peak   2 - CN values\t8q24.21 \tchr8:300-400(probes 3:4)\t0.5\t0.1\t-0.2\t
    Deletion Peak   1 - CN values\t9p21.3 \tchr9:500-600(probes 5:6)\t0.001\t-0.8\t0\t
    """
)


@pytest.fixture
def gistic_dir(tmp_path):
    (tmp_path / "amp_genes.conf_90.txt").write_text(AMP_GENES)
    (tmp_path / "del_genes.conf_90.txt").write_text(DEL_GENES)
    (tmp_path / "all_lesions.conf_90.txt").write_text(ALL_LESIONS)
    return tmp_path
